from dataclasses import dataclass, field
from typing import List, Optional

from .constants import (
    DEFAULT_VERBS,
    OUTPUT_ICON_TABLE,
    SERVICE_ACCOUNT_PREFIX,
    VALID_OUTPUT_FORMATS,
    VALID_VERBS,
    WILDCARD_VERBS,
)
from .errors import ConfigurationError


@dataclass
class AccessOptions:
    """All user settings of one run."""

    verbs: List[str] = field(default_factory=lambda: list(DEFAULT_VERBS))
    output: str = OUTPUT_ICON_TABLE
    namespace: Optional[str] = None
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    impersonate: Optional[str] = None
    impersonate_group: Optional[str] = None
    service_account: Optional[str] = None

    @property
    def is_namespaced(self) -> bool:
        return bool(self.namespace)

    def expand_verbs(self) -> None:
        """Replace the verb list by all verbs if it contains `*` or `all`."""
        if any(v in WILDCARD_VERBS for v in self.verbs):
            self.verbs = list(VALID_VERBS)

    def expand_service_account(self) -> None:
        """Turn --sa into the matching impersonation user."""
        if not self.service_account:
            return
        if self.impersonate:
            raise ConfigurationError("--sa cannot be mixed with --as")
        self.impersonate = f"{SERVICE_ACCOUNT_PREFIX}:{self._namespaced_service_account()}"

    def _namespaced_service_account(self) -> str:
        if ":" in self.service_account:
            return self.service_account
        if self.namespace:
            return f"{self.namespace}:{self.service_account}"
        raise ConfigurationError(
            "serviceAccounts are namespaced, either provide --namespace or fully qualify "
            f"the serviceAccount: '<namespace>:{self.service_account}'"
        )


# ----------------------------- Validation -----------------------------
def validate_verbs(verbs: List[str]) -> None:
    unexpected = sorted(set(verbs) - set(VALID_VERBS))
    if unexpected:
        raise ConfigurationError(f"unexpected verbs: {unexpected}")


def validate_output_format(output: str) -> None:
    if output not in VALID_OUTPUT_FORMATS:
        raise ConfigurationError(f"unexpected output format: {output}")


def validate(opts: AccessOptions) -> None:
    validate_verbs(opts.verbs)
    validate_output_format(opts.output)
