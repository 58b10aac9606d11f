import logging
from typing import Optional

from kubernetes.client import ApiException
from urllib3.exceptions import HTTPError

from .constants import CLUSTER_ROLE_KIND, ROLE_KIND
from .errors import RbacListError
from .result import RoleRef, SubjectAccess

logger = logging.getLogger(__name__)


def _list(what: str, list_fn, *args):
    try:
        return list_fn(*args).items or []
    except ApiException as e:
        raise RbacListError(f"list {what}: {e.status} {e.reason}") from e
    except (HTTPError, OSError) as e:
        raise RbacListError(f"list {what}: {e}") from e


# ----------------------------- Roles -----------------------------
def fetch_matching_cluster_roles(rbac_api, sa: SubjectAccess) -> None:
    logger.info("fetching ClusterRoles")
    for role in _list("clusterroles", rbac_api.list_cluster_role):
        r = RoleRef(name=role.metadata.name, kind=CLUSTER_ROLE_KIND)
        for rule in role.rules or []:
            sa.match_rules(r, rule)


def fetch_matching_roles(rbac_api, sa: SubjectAccess, namespace: str) -> None:
    logger.info("fetching Roles for namespace %s", namespace)
    for role in _list(f"roles in ns/{namespace}", rbac_api.list_namespaced_role, namespace):
        r = RoleRef(name=role.metadata.name, kind=ROLE_KIND)
        for rule in role.rules or []:
            sa.match_rules(r, rule)


# ----------------------------- Bindings -----------------------------
def resolve_cluster_role_bindings(rbac_api, sa: SubjectAccess) -> None:
    logger.info("fetching ClusterRoleBindings")
    for crb in _list("clusterrolebindings", rbac_api.list_cluster_role_binding):
        r = RoleRef(name=crb.role_ref.name, kind=crb.role_ref.kind)
        sa.resolve_role_ref(r, crb.subjects)


def resolve_role_bindings(rbac_api, sa: SubjectAccess, namespace: str) -> None:
    logger.info("fetching RoleBindings for namespace %s", namespace)
    for rb in _list(f"rolebindings in ns/{namespace}", rbac_api.list_namespaced_role_binding, namespace):
        # may reference a Role or a ClusterRole
        r = RoleRef(name=rb.role_ref.name, kind=rb.role_ref.kind)
        sa.resolve_role_ref(r, rb.subjects)


def get_subject_access(
    rbac_api,
    resource: str,
    resource_name: str = "",
    namespace: Optional[str] = None,
) -> SubjectAccess:
    """
    Determine the subjects with access to `resource` (or one instance of it).

    Phases run in order because bindings can only be resolved against the
    roles collected before them. Without a namespace only ClusterRoles and
    ClusterRoleBindings are considered and a failure to list them is fatal;
    with a namespace such a failure only makes the result incomplete.
    """
    sa = SubjectAccess(resource, resource_name)

    try:
        fetch_matching_cluster_roles(rbac_api, sa)
        resolve_cluster_role_bindings(rbac_api, sa)
    except RbacListError as e:
        if not namespace:
            raise
        logger.warning("incomplete result: %s", e)

    if not namespace:
        logger.info("Skipping Roles and RoleBindings because namespace is missing")
        return sa

    fetch_matching_roles(rbac_api, sa, namespace)
    resolve_role_bindings(rbac_api, sa, namespace)
    return sa
