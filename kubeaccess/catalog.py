import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Tuple

from kubernetes.client import ApiException
from urllib3.exceptions import HTTPError

from .errors import DiscoveryError, ResourceNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupResource:
    """An API resource kind as reported by discovery."""

    group: str
    resource: str
    namespaced: bool
    verbs: FrozenSet[str]
    kind: str = ""
    singular_name: str = ""
    short_names: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def full_name(self) -> str:
        # e.g. 'deployments.apps'
        if not self.group:
            return self.resource
        return f"{self.resource}.{self.group}"

    def matches(self, name: str) -> bool:
        name = name.lower()
        candidates = {self.resource, self.full_name, self.singular_name, self.kind.lower()}
        candidates.update(self.short_names)
        return name in {c.lower() for c in candidates if c}


def parse_group_version(gv: str) -> Tuple[str, str]:
    """
    Split a groupVersion into (group, version).

    "" and "v1" belong to the core group, "apps/v1" to "apps".
    """
    if not gv or gv == "/":
        return "", ""
    parts = gv.split("/")
    if len(parts) == 1:
        return "", parts[0]
    if len(parts) == 2:
        return parts[0], parts[1]
    raise ValueError(f"unexpected GroupVersion string: {gv}")


def fetch_available_group_resources(discovery, namespaced: bool = False) -> List[GroupResource]:
    """
    List all resource kinds the API server offers, in discovery order.

    `namespaced` restricts the list to namespaced kinds. Kinds without verbs
    cannot be probed and are left out.
    """
    discovery.invalidate()

    try:
        if namespaced:
            resource_lists = discovery.server_preferred_namespaced_resources()
        else:
            resource_lists = discovery.server_preferred_resources()
    except ApiException as e:
        raise DiscoveryError(f"fetch available group resources: {e.status} {e.reason}") from e
    except (HTTPError, OSError) as e:
        raise DiscoveryError(f"fetch available group resources: {e}") from e

    grs = []
    for lst in resource_lists or []:
        resources = lst.resources or []
        if not resources:
            continue
        try:
            group, _ = parse_group_version(lst.group_version)
        except ValueError as e:
            logger.warning("Cannot parse groupVersion: %s", e)
            continue
        for r in resources:
            if not r.verbs:
                continue
            grs.append(
                GroupResource(
                    group=group,
                    resource=r.name,
                    namespaced=bool(r.namespaced),
                    verbs=frozenset(r.verbs),
                    kind=r.kind or "",
                    singular_name=r.singular_name or "",
                    short_names=tuple(r.short_names or ()),
                )
            )
    return grs


def resolve_resource(grs: List[GroupResource], name: str) -> str:
    """Map a user supplied name (plural, singular, short name, kind) to the plural resource name."""
    for gr in grs:
        if gr.matches(name):
            return gr.resource
    raise ResourceNotFoundError(f"determine requested resource: the server doesn't have a resource type {name!r}")
