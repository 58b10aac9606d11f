import logging
import threading
from typing import Optional

from .catalog import fetch_available_group_resources, resolve_resource
from .constants import OUTPUT_LEFT_RIGHT
from .diff import diff
from .errors import KubeAccessError, wrap
from .options import AccessOptions, validate
from .prober import check_resource_access
from .resolver import get_subject_access
from .result import ResourceAccess, SubjectAccess

logger = logging.getLogger(__name__)

CLUSTER_SCOPE_NOTE = "No namespace given, this implies cluster scope (try -n if this is not intended)\n"
CLUSTER_BINDINGS_NOTE = "Only ClusterRoleBindings are considered, because no namespace is given.\n"


def resource_access(opts: AccessOptions, clients, stop: Optional[threading.Event] = None) -> ResourceAccess:
    """Access matrix of the current (or impersonated) user over all resource kinds."""
    validate(opts)

    grs = fetch_available_group_resources(clients.discovery(), namespaced=opts.is_namespaced)
    logger.debug("Found %d group resources", len(grs))

    return check_resource_access(clients.review_api(), grs, opts.verbs, opts.namespace, stop)


def subject_access(opts: AccessOptions, clients, resource: str, resource_name: str = "") -> SubjectAccess:
    """Subjects with access to `resource`, resolved from RBAC objects."""
    validate(opts)

    grs = fetch_available_group_resources(clients.discovery())
    resource = resolve_resource(grs, resource)

    try:
        return get_subject_access(clients.rbac_api(), resource, resource_name, opts.namespace)
    except KubeAccessError as e:
        raise wrap("get subject access", e) from e


# ----------------------------- Printing entry points -----------------------------
def run_resource(opts: AccessOptions, clients, out, stop: Optional[threading.Event] = None) -> None:
    results = resource_access(opts, clients, stop)
    results.to_printer(opts.verbs).render(out, opts.output)

    if not opts.namespace:
        out.write(CLUSTER_SCOPE_NOTE)


def run_subject(opts: AccessOptions, clients, out, resource: str, resource_name: str = "") -> None:
    sa = subject_access(opts, clients, resource, resource_name)

    if sa.empty():
        logger.warning(
            "No subjects with access found. This most likely means that you have "
            "insufficient rights to review authorization."
        )
        return

    sa.to_printer(opts.verbs).render(out, opts.output)

    if not opts.namespace:
        out.write(CLUSTER_BINDINGS_NOTE)


def run_diff(
    left_opts: AccessOptions,
    right_opts: AccessOptions,
    clients_factory,
    out,
    stop: Optional[threading.Event] = None,
) -> None:
    """Print the access rights that change between two option sets (◀ left, ▶ right)."""
    try:
        left = resource_access(left_opts, clients_factory(left_opts), stop)
    except KubeAccessError as e:
        raise wrap("original options failed", e) from e

    try:
        right = resource_access(right_opts, clients_factory(right_opts), stop)
    except KubeAccessError as e:
        raise wrap("modified options failed", e) from e

    diff(left, right, right_opts.verbs).render(out, OUTPUT_LEFT_RIGHT)
