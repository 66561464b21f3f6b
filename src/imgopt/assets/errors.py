"""Asset processing errors."""


class AssetError(Exception):
    """Base exception for asset processing failures."""


class CodecError(AssetError):
    """Raised when an image cannot be decoded or re-encoded."""
