"""Shared test fixtures and fake kubernetes APIs."""

import logging
import threading
from types import SimpleNamespace
from typing import Any

import pytest
from kubernetes import client
from kubernetes.client import ApiException


# ----------------------------- Builders -----------------------------
def api_resource(name, verbs, namespaced=True, kind=None, singular=None, short_names=None):
    return client.V1APIResource(
        name=name,
        verbs=list(verbs),
        namespaced=namespaced,
        kind=kind or name.rstrip("s").capitalize(),
        singular_name=singular if singular is not None else name.rstrip("s"),
        short_names=short_names,
    )


def resource_list(group_version, *resources):
    return client.V1APIResourceList(group_version=group_version, resources=list(resources))


def rule(resources, verbs, resource_names=None):
    return client.V1PolicyRule(
        api_groups=[""],
        resources=list(resources),
        verbs=list(verbs),
        resource_names=resource_names,
    )


def cluster_role(name, *rules):
    return client.V1ClusterRole(metadata=client.V1ObjectMeta(name=name), rules=list(rules))


def role(name, *rules):
    return client.V1Role(metadata=client.V1ObjectMeta(name=name), rules=list(rules))


def subject(kind, name, namespace=None):
    return client.RbacV1Subject(kind=kind, name=name, namespace=namespace)


def _role_ref(kind, name):
    return client.V1RoleRef(api_group="rbac.authorization.k8s.io", kind=kind, name=name)


def cluster_role_binding(name, role_name, *subjects):
    return client.V1ClusterRoleBinding(
        metadata=client.V1ObjectMeta(name=name),
        role_ref=_role_ref("ClusterRole", role_name),
        subjects=list(subjects),
    )


def role_binding(name, role_kind, role_name, *subjects):
    return client.V1RoleBinding(
        metadata=client.V1ObjectMeta(name=name),
        role_ref=_role_ref(role_kind, role_name),
        subjects=list(subjects),
    )


# ----------------------------- Fakes -----------------------------
class FakeReviewApi:
    """
    Answers SelfSubjectAccessReviews from a table.

    `decisions` maps (verb, resource, group) to True/False or an exception to
    raise. Anything not in the table is denied.
    """

    def __init__(self, decisions: dict[tuple, Any] | None = None, on_call=None):
        self.decisions = decisions or {}
        self.on_call = on_call
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def create_self_subject_access_review(self, body):
        attrs = body.spec.resource_attributes
        with self._lock:
            self.calls.append((attrs.verb, attrs.resource, attrs.group, attrs.namespace))
        if self.on_call is not None:
            self.on_call(attrs)
        decision = self.decisions.get((attrs.verb, attrs.resource, attrs.group), False)
        if isinstance(decision, Exception):
            raise decision
        return SimpleNamespace(status=SimpleNamespace(allowed=bool(decision), reason=""))


class FakeDiscovery:
    def __init__(self, lists=None, error: Exception | None = None):
        self.lists = lists or []
        self.error = error
        self.invalidated = 0
        self.namespaced_calls = 0

    def invalidate(self):
        self.invalidated += 1

    def server_preferred_resources(self):
        if self.error is not None:
            raise self.error
        return self.lists

    def server_preferred_namespaced_resources(self):
        self.namespaced_calls += 1
        if self.error is not None:
            raise self.error
        return [
            resource_list(lst.group_version, *[r for r in lst.resources if r.namespaced])
            for lst in self.lists
        ]


class FakeRbacApi:
    """RbacAuthorizationV1Api stand-in. `errors` maps a method name to an exception."""

    def __init__(self, cluster_roles=(), cluster_role_bindings=(), roles=(), role_bindings=(), errors=None):
        self.cluster_roles = list(cluster_roles)
        self.cluster_role_bindings = list(cluster_role_bindings)
        self.roles = list(roles)
        self.role_bindings = list(role_bindings)
        self.errors = errors or {}
        self.calls: list[str] = []

    def _answer(self, method, items):
        self.calls.append(method)
        if method in self.errors:
            raise self.errors[method]
        return SimpleNamespace(items=items)

    def list_cluster_role(self):
        return self._answer("list_cluster_role", self.cluster_roles)

    def list_cluster_role_binding(self):
        return self._answer("list_cluster_role_binding", self.cluster_role_bindings)

    def list_namespaced_role(self, namespace):
        return self._answer("list_namespaced_role", self.roles)

    def list_namespaced_role_binding(self, namespace):
        return self._answer("list_namespaced_role_binding", self.role_bindings)


class FakeClients:
    def __init__(self, discovery=None, review_api=None, rbac_api=None):
        self._discovery = discovery or FakeDiscovery()
        self._review_api = review_api or FakeReviewApi()
        self._rbac_api = rbac_api or FakeRbacApi()

    def discovery(self):
        return self._discovery

    def review_api(self):
        return self._review_api

    def rbac_api(self):
        return self._rbac_api


def forbidden():
    return ApiException(status=403, reason="Forbidden")


# ----------------------------- Fixtures -----------------------------
@pytest.fixture
def sample_discovery():
    """Core pods/nodes plus apps deployments."""
    return FakeDiscovery(
        [
            resource_list(
                "v1",
                api_resource("pods", ["create", "get", "list", "delete"], short_names=["po"]),
                api_resource("nodes", ["get", "list"], namespaced=False, short_names=["no"]),
            ),
            resource_list(
                "apps/v1",
                api_resource("deployments", ["create", "get", "list", "update", "delete"], kind="Deployment",
                             short_names=["deploy"]),
            ),
        ]
    )


@pytest.fixture(autouse=True)
def reset_kubeaccess_logger():
    """Drop handlers installed by setup_logging so they do not leak across tests."""
    yield
    logger = logging.getLogger("kubeaccess")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
