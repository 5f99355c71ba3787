"""In-memory collaborators for exchange tests."""


class RecordingSink:
    """Response sink that keeps everything written to it.

    Args:
        fail_with: Exception raised by ``write`` instead of accepting bytes.
        accept: Maximum bytes accepted per ``write`` call.
    """

    def __init__(self, fail_with: Exception | None = None, accept: int | None = None):
        self.header_map: dict[str, list[str]] = {}
        self.statuses: list[int] = []
        self.body = bytearray()
        self.fail_with = fail_with
        self.accept = accept

    def headers(self):
        return self.header_map

    def commit_status(self, code: int) -> None:
        self.statuses.append(code)

    def write(self, data: bytes) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        if self.accept is not None:
            data = data[: self.accept]
        self.body += data
        return len(data)
