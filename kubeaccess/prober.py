"""
Concurrent SelfSubjectAccessReview probing.

Every resource is checked on its own worker; the pool size bounds the number
of reviews in flight, so the caller should hand in a client whose connection
pool is at least that large.
"""
import concurrent.futures
import logging
import threading
from typing import Dict, List, Optional

from kubernetes import client

from .catalog import GroupResource
from .constants import MAX_INFLIGHT_REVIEWS
from .result import Access, ResourceAccess, ResourceAccessItem

logger = logging.getLogger(__name__)


def can_i(review_api, verb: str, gr: GroupResource, namespace: Optional[str]) -> Access:
    spec = client.V1SelfSubjectAccessReviewSpec(
        resource_attributes=client.V1ResourceAttributes(
            verb=verb,
            resource=gr.resource,
            group=gr.group,
            namespace=namespace or None,
        )
    )
    body = client.V1SelfSubjectAccessReview(spec=spec)
    try:
        resp = review_api.create_self_subject_access_review(body=body)
    except Exception as e:
        logger.debug("review %s %s failed: %s", verb, gr.full_name, e)
        return Access.REQUEST_ERR
    if resp.status is not None and resp.status.allowed:
        return Access.ALLOWED
    return Access.DENIED


def check_group_resource(
    review_api,
    gr: GroupResource,
    verbs: List[str],
    namespace: Optional[str],
    stop: threading.Event,
) -> Optional[ResourceAccessItem]:
    if stop.is_set():
        return None

    logger.debug("Checking access for %s", gr.full_name)

    # The API server reports "allowed" for cluster-scoped resources when a
    # namespace is set, even if access is forbidden.
    if not gr.namespaced:
        namespace = None

    access: Dict[str, Access] = {}
    for v in verbs:
        if stop.is_set():
            break
        if v not in gr.verbs:
            access[v] = Access.NOT_APPLICABLE
            continue
        access[v] = can_i(review_api, v, gr, namespace)

    return ResourceAccessItem(name=gr.full_name, access=access)


def check_resource_access(
    review_api,
    grs: List[GroupResource],
    verbs: List[str],
    namespace: Optional[str] = None,
    stop: Optional[threading.Event] = None,
    max_inflight: int = MAX_INFLIGHT_REVIEWS,
) -> ResourceAccess:
    """
    Determine the access rights for all group resources and verbs.

    A failing review is recorded as REQUEST_ERR for that cell only. Setting
    `stop` makes workers skip their remaining verbs; whatever was already
    resolved is kept.
    """
    if stop is None:
        stop = threading.Event()

    results: Dict[int, ResourceAccessItem] = {}
    future_to_idx: Dict[concurrent.futures.Future, int] = {}
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_inflight, thread_name_prefix="ssar") as executor:
        try:
            for idx, gr in enumerate(grs):
                future_to_idx[executor.submit(check_group_resource, review_api, gr, verbs, namespace, stop)] = idx
            for fut in concurrent.futures.as_completed(future_to_idx):
                item = fut.result()
                if item is not None:
                    results[future_to_idx[fut]] = item
        except KeyboardInterrupt:
            logger.warning("Interrupted, the access matrix is incomplete")
            stop.set()
            executor.shutdown(wait=True, cancel_futures=True)
            for fut, idx in future_to_idx.items():
                if fut.done() and not fut.cancelled() and fut.result() is not None:
                    results[idx] = fut.result()

    # discovery order first, the stable sort in ResourceAccess does the rest
    return ResourceAccess(results[idx] for idx in sorted(results))
