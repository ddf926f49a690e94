class KlogsError(Exception):
    """Base exception for klogs errors."""


class ClusterConnectionError(KlogsError):
    """Raised when the kubeconfig or in-cluster config cannot be loaded, or a context has no usable client."""


class WatchError(KlogsError):
    """Raised when a pod watch reports an error event."""
