class KubeAccessError(Exception):
    """Base class for errors surfaced to the command line."""

    exit_code = 1


class ConfigurationError(KubeAccessError):
    """Invalid user input: verbs, output format, overrides, kube config."""

    exit_code = 2


class DiscoveryError(KubeAccessError):
    pass


class RbacListError(KubeAccessError):
    pass


class ResourceNotFoundError(KubeAccessError):
    pass


def wrap(context: str, err: Exception) -> KubeAccessError:
    """
    Prefix an error message with the operation that failed.

    The wrapped exception keeps the class of `err` when it already is a
    KubeAccessError, so the exit code does not change.
    """
    cls = type(err) if isinstance(err, KubeAccessError) else KubeAccessError
    return cls(f"{context}: {err}")
