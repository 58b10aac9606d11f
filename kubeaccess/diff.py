import logging
from typing import List

from .printer import Outcome, Table
from .result import Access, ResourceAccess, verb_headers

logger = logging.getLogger(__name__)


def diff(left: ResourceAccess, right: ResourceAccess, verbs: List[str]) -> Table:
    """
    Build a table holding only the resources whose access differs.

    The diff is taken from the left side's point of view: resources only
    present on the right are not listed (a warning says so), resources only
    present on the left are compared against "denied".
    """
    p = Table(["NAME"] + verb_headers(verbs))

    for name in sorted(set(left.names())):
        l, r = left[name], right.get(name, {})
        logger.debug("left=%s right=%s name=%s", dict(l), dict(r), name)

        changed = False
        outcomes = []
        for verb in verbs:
            ll, rr = l.get(verb, Access.DENIED), r.get(verb, Access.DENIED)
            o = Outcome.NONE
            if ll != rr:
                changed = True
                if ll == Access.ALLOWED:
                    o = Outcome.DOWN
                if rr == Access.ALLOWED:
                    o = Outcome.UP
            outcomes.append(o)
        if changed:
            p.add_row([name], *outcomes)

    if any(name not in left for name in right.names()):
        logger.warning("Some differences may be hidden, please swap the roles to get the full picture.")

    return p
