# Canonical verbs, CRUD order. This is also the default display order.
VALID_VERBS = [
    "create",
    "get",
    "list",
    "watch",
    "update",
    "patch",
    "delete",
    "deletecollection",
]

DEFAULT_VERBS = ["list", "create", "update", "delete"]

WILDCARD_VERBS = {"*", "all"}

OUTPUT_ICON_TABLE = "icon-table"
OUTPUT_ASCII_TABLE = "ascii-table"
OUTPUT_LEFT_RIGHT = "left-right"

VALID_OUTPUT_FORMATS = [OUTPUT_ICON_TABLE, OUTPUT_ASCII_TABLE]

# Upper bound on in-flight SelfSubjectAccessReview calls.
MAX_INFLIGHT_REVIEWS = 20

ROLE_KIND = "Role"
CLUSTER_ROLE_KIND = "ClusterRole"

SERVICE_ACCOUNT_PREFIX = "system:serviceaccount"

DEFAULT_LOG_LEVEL = "warn"
