"""
kubeaccess command line.

  kubeaccess [flags]                          access matrix of the current user
  kubeaccess resource RESOURCE [NAME] [flags] subjects with access to a resource
  kubeaccess diff [flags] flag=value ...      access changes between two settings
  kubeaccess version
"""
import argparse
import logging
import sys
import threading
from typing import Dict, List, Optional

from . import __version__
from .commands import run_diff, run_resource, run_subject
from .constants import DEFAULT_LOG_LEVEL, DEFAULT_VERBS, OUTPUT_ICON_TABLE, VALID_OUTPUT_FORMATS, VALID_VERBS
from .errors import ConfigurationError, KubeAccessError
from .kube import KubeClients
from .log import setup_logging
from .options import AccessOptions

logger = logging.getLogger(__name__)

DIFF_EPILOG = """\
The diff command accepts the same flags as the root command. Those define the
original settings (◀). Positional args of the form 'flagname=value' patch the
original settings; the patched settings are compared against (▶). Only
resources whose access differs are shown.

examples:
  review diff of access rights between context one and two
    kubeaccess diff --context=one context=two
  review diff of access rights between service accounts
    kubeaccess diff -n kube-system --sa=coredns sa=attachdetach-controller
"""


def _csv(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def add_common_flags(p: argparse.ArgumentParser, suppress: bool = False) -> None:
    # Subcommands re-declare the flags with suppressed defaults so they do not
    # clobber values given before the subcommand name.
    def default(value):
        return argparse.SUPPRESS if suppress else value

    p.add_argument(
        "--verbs",
        type=_csv,
        default=default(list(DEFAULT_VERBS)),
        help=f"comma separated verbs to show access for, out of {VALID_VERBS} (or '*'/'all')",
    )
    p.add_argument(
        "-o",
        "--output",
        default=default(OUTPUT_ICON_TABLE),
        help=f"output format out of {VALID_OUTPUT_FORMATS}",
    )
    p.add_argument("-n", "--namespace", default=default(None), help="namespace scope of the request")
    p.add_argument("--kubeconfig", default=default(None), help="path to kubeconfig")
    p.add_argument("--context", default=default(None), help="kubeconfig context name")
    p.add_argument("--as", dest="impersonate", default=default(None), help="user to impersonate")
    p.add_argument("--as-group", dest="impersonate_group", default=default(None), help="group to impersonate")
    p.add_argument(
        "--sa",
        dest="service_account",
        default=default(None),
        help="like --as, but impersonate a service account. Either '<namespace>:<name>' or combined with --namespace",
    )
    p.add_argument(
        "-v",
        "--verbosity",
        default=default(DEFAULT_LOG_LEVEL),
        help="log level (debug, info, warn, error)",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="kubeaccess",
        description="Show an access matrix for kubernetes resources.",
    )
    add_common_flags(ap)
    sub = ap.add_subparsers(dest="command")

    rp = sub.add_parser(
        "resource",
        aliases=["r", "for", "for-resource"],
        help="show subjects with access to a given resource",
    )
    rp.add_argument("resource", help="resource kind, e.g. deployments, cm, pod")
    rp.add_argument("resource_name", nargs="?", default="", help="name of one resource instance")
    add_common_flags(rp, suppress=True)

    # flag=value overrides are left over by parse_known_args, which lets them
    # sit anywhere between the flags
    dp = sub.add_parser(
        "diff",
        usage="kubeaccess diff [flags] flag=value [flag=value ...]",
        help="show access rule differences between two settings",
        epilog=DIFF_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_common_flags(dp, suppress=True)

    sub.add_parser("version", help="print the version")
    return ap


def options_from_args(args: argparse.Namespace) -> AccessOptions:
    opts = AccessOptions(
        verbs=list(args.verbs),
        output=args.output,
        namespace=args.namespace or None,
        kubeconfig=args.kubeconfig,
        context=args.context,
        impersonate=args.impersonate,
        impersonate_group=args.impersonate_group,
        service_account=args.service_account,
    )
    opts.expand_verbs()
    opts.expand_service_account()
    return opts


def parse_overrides(overrides: List[str]) -> Dict[str, str]:
    parsed = {}
    for arg in overrides:
        name, sep, value = arg.partition("=")
        if not sep or not name or name.startswith("-"):
            raise ConfigurationError(f"Diff arg needs to set a value (example flag=value), got {arg}")
        parsed[name] = value
    if not parsed:
        raise ConfigurationError("Nothing to diff against. See --help for examples.")
    return parsed


def override_argv(argv: List[str], overrides: List[str]) -> List[str]:
    """The original argv with the flag=value overrides turned into trailing flags."""
    patched = [a for a in argv if a not in overrides]
    for name, value in parse_overrides(overrides).items():
        logger.info("Overriding flag %s=%s", name, value)
        patched.append(f"--{name}={value}")
    return patched


def main(argv: Optional[List[str]] = None, clients_factory=KubeClients, out=None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    if out is None:
        out = sys.stdout

    parser = build_parser()
    args, overrides = parser.parse_known_args(argv)
    if overrides and args.command != "diff":
        parser.error(f"unrecognized arguments: {' '.join(overrides)}")

    try:
        setup_logging(args.verbosity)

        if args.command == "version":
            out.write(f"kubeaccess {__version__}\n")
            return 0

        stop = threading.Event()
        opts = options_from_args(args)

        if args.command in ("resource", "r", "for", "for-resource"):
            run_subject(opts, clients_factory(opts), out, args.resource, args.resource_name)
        elif args.command == "diff":
            right_args = parser.parse_args(override_argv(argv, overrides))
            right_opts = options_from_args(right_args)
            run_diff(opts, right_opts, clients_factory, out, stop)
        else:
            run_resource(opts, clients_factory(opts), out, stop)
    except KubeAccessError as e:
        logger.critical("%s", e)
        return e.exit_code
    except KeyboardInterrupt:
        return 130
    return 0
