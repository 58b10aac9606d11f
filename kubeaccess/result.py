import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set

from .constants import VALID_VERBS
from .printer import Outcome, Table


class Access(enum.IntEnum):
    """Access of the subject to one resource+verb combination."""

    DENIED = 0
    ALLOWED = 1
    NOT_APPLICABLE = 2
    REQUEST_ERR = 3


_ACCESS_TO_OUTCOME = {
    Access.DENIED: Outcome.DOWN,
    Access.ALLOWED: Outcome.UP,
    Access.NOT_APPLICABLE: Outcome.NONE,
    Access.REQUEST_ERR: Outcome.ERR,
}


def outcome_for(access: Access) -> Outcome:
    try:
        return _ACCESS_TO_OUTCOME[access]
    except KeyError:
        raise ValueError(f"unknown access code {access!r}") from None


def verb_headers(verbs: Iterable[str]) -> List[str]:
    return [v.upper() for v in verbs]


# ----------------------------- Resource access -----------------------------
@dataclass(frozen=True)
class ResourceAccessItem:
    name: str
    access: Mapping[str, Access] = field(default_factory=dict)


class ResourceAccess:
    """
    Access matrix for all probed resources, sorted by resource name.

    Sorting is stable: items with the same name keep the order they were
    handed in, which is discovery order when built by the prober.
    """

    def __init__(self, items: Iterable[ResourceAccessItem] = ()):
        self._items: List[ResourceAccessItem] = sorted(items, key=lambda i: i.name)
        self._by_name: Dict[str, ResourceAccessItem] = {}
        for item in self._items:
            self._by_name.setdefault(item.name, item)

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, Access]]) -> "ResourceAccess":
        return cls(ResourceAccessItem(name, dict(access)) for name, access in data.items())

    def __iter__(self) -> Iterator[ResourceAccessItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name) -> bool:
        return name in self._by_name

    def __getitem__(self, name: str) -> Mapping[str, Access]:
        return self._by_name[name].access

    def get(self, name: str, default=None) -> Optional[Mapping[str, Access]]:
        item = self._by_name.get(name)
        return item.access if item is not None else default

    def names(self) -> List[str]:
        return [i.name for i in self._items]

    def to_dict(self) -> Dict[str, Dict[str, Access]]:
        return {i.name: dict(i.access) for i in self._items}

    def __eq__(self, other) -> bool:
        if not isinstance(other, ResourceAccess):
            return NotImplemented
        return [(i.name, dict(i.access)) for i in self] == [(i.name, dict(i.access)) for i in other]

    def to_printer(self, verbs: List[str]) -> Table:
        p = Table(["NAME"] + verb_headers(verbs))
        for item in self._items:
            # verbs missing from a partial (cancelled) row are left blank
            outcomes = [
                outcome_for(item.access[v]) if v in item.access else Outcome.NONE
                for v in verbs
            ]
            p.add_row([item.name], *outcomes)
        return p


# ----------------------------- Subject access -----------------------------
@dataclass(frozen=True)
class RoleRef:
    """A ClusterRole or Role. The namespace is fixed per resolution run."""

    name: str
    kind: str


@dataclass(frozen=True)
class SubjectRef:
    name: str
    kind: str
    namespace: str = ""


def expand_verbs(verbs: Optional[Iterable[str]]) -> List[str]:
    verbs = list(verbs or [])
    if "*" in verbs:
        return list(VALID_VERBS)
    return verbs


def _includes(names: Iterable[str], x: str) -> bool:
    if not x:
        return False
    return x in names


class SubjectAccess:
    """
    Subjects with access to one resource (and optionally one instance of it).

    `role_to_verbs` is filled from (Cluster)Role rules via match_rules,
    `subject_to_verbs` from (Cluster)RoleBindings via resolve_role_ref.
    Both only ever grow.
    """

    def __init__(self, resource: str, resource_name: str = ""):
        self.resource = resource
        self.resource_name = resource_name or ""
        self.role_to_verbs: Dict[RoleRef, Set[str]] = {}
        self.subject_to_verbs: Dict[SubjectRef, Set[str]] = {}

    def empty(self) -> bool:
        return not self.subject_to_verbs

    def match_rules(self, role: RoleRef, rule) -> None:
        """Add the rule's verbs to `role` if the rule covers the queried resource."""
        resource_names = getattr(rule, "resource_names", None) or []
        if resource_names and not _includes(resource_names, self.resource_name):
            return

        resources = rule.resources or []
        if "*" not in resources and self.resource not in resources:
            return

        verbs = self.role_to_verbs.setdefault(role, set())
        verbs.update(expand_verbs(rule.verbs))

    def resolve_role_ref(self, role: RoleRef, subjects) -> None:
        """Grant the verbs of `role` to every subject of a binding."""
        verbs_for_role = self.role_to_verbs.get(role)
        if verbs_for_role is None:
            return
        for s in subjects or []:
            ref = SubjectRef(name=s.name, kind=s.kind, namespace=s.namespace or "")
            self.subject_to_verbs.setdefault(ref, set()).update(verbs_for_role)

    def sorted_subjects(self) -> List[SubjectRef]:
        # dict order is discovery order, so equal (name, kind) keys stay stable
        return sorted(self.subject_to_verbs, key=lambda s: (s.name, s.kind))

    def to_printer(self, verbs: List[str]) -> Table:
        p = Table(["NAME", "KIND", "SA-NAMESPACE"] + verb_headers(verbs))
        for subject in self.sorted_subjects():
            granted = self.subject_to_verbs[subject]
            if not granted.intersection(verbs):
                continue
            outcomes = [Outcome.UP if v in granted else Outcome.DOWN for v in verbs]
            p.add_row([subject.name, subject.kind, subject.namespace], *outcomes)
        return p
