"""Errors raised by the HTTP collaborators."""


class CabinetRequestError(Exception):
    """A request to an external service failed; carries the URL that failed."""

    def __init__(self, url: str, base: BaseException):
        super().__init__(f"{url}: {base}")
        self.url = url
        self.base = base
