import logging
from typing import List, Optional

from kubernetes import client, config
from kubernetes.client import ApiException
from kubernetes.config import ConfigException
from urllib3.exceptions import HTTPError

from .constants import MAX_INFLIGHT_REVIEWS
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


# ----------------------------- Client construction -----------------------------
def load_configuration(kubeconfig: Optional[str] = None, context: Optional[str] = None) -> client.Configuration:
    cfg = client.Configuration()
    try:
        if kubeconfig or context:
            config.load_kube_config(config_file=kubeconfig, context=context, client_configuration=cfg)
        else:
            try:
                config.load_kube_config(client_configuration=cfg)
            except ConfigException:
                config.load_incluster_config(client_configuration=cfg)
    except (ConfigException, OSError) as e:
        raise ConfigurationError(f"failed to configure kube client: {e}") from e
    return cfg


def build_api_client(
    cfg: client.Configuration,
    impersonate: Optional[str] = None,
    impersonate_group: Optional[str] = None,
    pool_size: int = MAX_INFLIGHT_REVIEWS,
) -> client.ApiClient:
    # Every parallel review needs its own pooled connection.
    cfg.connection_pool_maxsize = max(cfg.connection_pool_maxsize or 0, pool_size)
    api = client.ApiClient(cfg)
    if impersonate:
        api.default_headers["Impersonate-User"] = impersonate
        logger.debug("Impersonating user %s", impersonate)
    if impersonate_group:
        api.default_headers["Impersonate-Group"] = impersonate_group
        logger.debug("Impersonating group %s", impersonate_group)
    return api


# ----------------------------- Discovery -----------------------------
class Discovery:
    """
    Preferred API resources of the cluster.

    Core resources come from /api/v1, every API group contributes the
    resources of its preferred version from /apis/<group>/<version>.
    Subresources such as pods/log are not listed. Results are memoised
    until invalidate() is called.
    """

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client
        self._lists: Optional[List[client.V1APIResourceList]] = None

    def invalidate(self) -> None:
        self._lists = None

    def server_preferred_resources(self) -> List[client.V1APIResourceList]:
        return [_filtered(lst, namespaced_only=False) for lst in self._fetch()]

    def server_preferred_namespaced_resources(self) -> List[client.V1APIResourceList]:
        return [_filtered(lst, namespaced_only=True) for lst in self._fetch()]

    def _fetch(self) -> List[client.V1APIResourceList]:
        if self._lists is not None:
            return self._lists

        lists = [client.CoreV1Api(self.api_client).get_api_resources()]

        groups = client.ApisApi(self.api_client).get_api_versions()
        for g in groups.groups or []:
            if g.preferred_version is None:
                continue
            gv = g.preferred_version.group_version
            try:
                lists.append(self._group_version_resources(gv))
            except ApiException as e:
                # e.g. an aggregated API whose backing service is down
                logger.warning("Skipping API group %s: %s %s", gv, e.status, e.reason)
            except HTTPError as e:
                logger.warning("Skipping API group %s: %s", gv, e)

        self._lists = lists
        return lists

    def _group_version_resources(self, group_version: str) -> client.V1APIResourceList:
        # No generated API class covers arbitrary groups, so the request runs
        # through the same steps the generated methods use.
        request = self.api_client.param_serialize(
            method="GET",
            resource_path=f"/apis/{group_version}",
            header_params={"Accept": "application/json"},
            auth_settings=["BearerToken"],
        )
        response = self.api_client.call_api(*request)
        response.read()
        return self.api_client.response_deserialize(
            response_data=response,
            response_types_map={"200": "V1APIResourceList"},
        ).data


def _filtered(lst: client.V1APIResourceList, namespaced_only: bool) -> client.V1APIResourceList:
    kept = []
    for r in lst.resources or []:
        if "/" in r.name:
            continue
        if namespaced_only and not r.namespaced:
            continue
        kept.append(r)
    return client.V1APIResourceList(group_version=lst.group_version, resources=kept)


# ----------------------------- API handles -----------------------------
def authorization_api(api_client: client.ApiClient) -> client.AuthorizationV1Api:
    return client.AuthorizationV1Api(api_client)


def rbac_api(api_client: client.ApiClient) -> client.RbacAuthorizationV1Api:
    return client.RbacAuthorizationV1Api(api_client)


class KubeClients:
    """Kubernetes API handles for one set of options."""

    def __init__(self, opts):
        cfg = load_configuration(opts.kubeconfig, opts.context)
        self.api_client = build_api_client(cfg, opts.impersonate, opts.impersonate_group)

    def discovery(self) -> Discovery:
        return Discovery(self.api_client)

    def review_api(self) -> client.AuthorizationV1Api:
        return authorization_api(self.api_client)

    def rbac_api(self) -> client.RbacAuthorizationV1Api:
        return rbac_api(self.api_client)
