from typing import Optional


class CompositorError(Exception):
    """Base class for every error surfaced to the caller of a batch."""


class ConfigError(CompositorError):
    pass


class ValidationError(CompositorError):
    pass


class MissingEmail(ValidationError):
    def __init__(self) -> None:
        super().__init__("Email is required.")


class MissingLogoUrl(ValidationError):
    def __init__(self) -> None:
        super().__init__("Logo URL is required.")


class MissingCaptions(ValidationError):
    def __init__(self) -> None:
        super().__init__("At least one caption line is required.")


class CaptionsUnreadable(ValidationError):
    def __init__(self, path, reason: str) -> None:
        super().__init__(f"Cannot read captions file {path}: {reason}")
        self.path = path


class MissingBackground(ValidationError):
    def __init__(self) -> None:
        super().__init__("Choose a background pool or a local background image.")


class MissingElement(ValidationError):
    def __init__(self) -> None:
        super().__init__("Choose an element pool, a local element image, or skip the element.")


class LicenseError(CompositorError):
    pass


class EmailInUse(LicenseError):
    def __init__(self, email: str, expiry: Optional[str] = None) -> None:
        super().__init__(f"Email {email!r} has already been used.")
        self.email = email
        self.expiry = expiry


class EmailMismatch(LicenseError):
    def __init__(self, email: str, validated_email: str) -> None:
        super().__init__(
            f"Email {email!r} does not match the email already checked in this session."
        )
        self.email = email
        self.validated_email = validated_email


class PoolError(CompositorError):
    pass


class PoolNotFound(PoolError):
    def __init__(self, category: str, name: str) -> None:
        super().__init__(f"No {category} pool named {name!r}.")
        self.category = category
        self.name = name


class ServerNotFound(PoolError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No server named {name!r}.")
        self.name = name


class EmptyPool(PoolError):
    def __init__(self, category: str, folder_id: str) -> None:
        super().__init__(f"No supported {category} images found in folder {folder_id!r}.")
        self.category = category
        self.folder_id = folder_id


class TransportError(CompositorError):
    pass


class UploadFailed(TransportError):
    def __init__(self, filename: str, status: int, reason: str = "") -> None:
        super().__init__(f"Upload of {filename!r} failed: {status} {reason}".rstrip())
        self.filename = filename
        self.status = status


class RenderFailed(TransportError):
    def __init__(self, url: str, status: int, reason: str = "") -> None:
        super().__init__(f"Rendering failed: {status} {reason}".rstrip())
        self.url = url
        self.status = status


class LogoFetchFailed(TransportError):
    def __init__(self, url: str, status: int, reason: str = "") -> None:
        super().__init__(f"Logo download failed: {status} {reason}".rstrip())
        self.url = url
        self.status = status


class OutputWriteFailed(CompositorError):
    def __init__(self, path, reason: str) -> None:
        super().__init__(f"Cannot write {path}: {reason}")
        self.path = path


class OutputCanceled(CompositorError):
    def __init__(self) -> None:
        super().__init__("Output location selection was canceled.")
