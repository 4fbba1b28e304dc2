class OSSError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code

    def __str__(self) -> str:
        if self.status_code and self.error_code:
            return f"{self.error_code} ({self.status_code}): {self.message}"
        elif self.status_code:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message


class EncodingError(OSSError):
    pass


class InvalidHeaderValueError(EncodingError):
    def __init__(self, name: str, reason: str = "not a valid header value"):
        super().__init__(f"Header {name!r}: {reason}")
        self.name = name


class CredentialError(OSSError):
    pass


class MalformedResponseError(OSSError):
    pass


class MalformedListingError(MalformedResponseError):
    pass


class TransportError(OSSError):
    pass


class HttpStatusError(OSSError):
    operation = "request"

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        error_code: str | None = None,
    ):
        if not message:
            message = f"can not {self.operation} object"
        super().__init__(message, status_code=status_code, error_code=error_code)

    @property
    def status(self) -> int:
        return self.status_code


class ListError(HttpStatusError):
    operation = "list"


class GetError(HttpStatusError):
    operation = "get"


class HeadError(HttpStatusError):
    operation = "head"


class PutError(HttpStatusError):
    operation = "put"


class CopyError(HttpStatusError):
    operation = "copy"


class DeleteError(HttpStatusError):
    operation = "delete"
