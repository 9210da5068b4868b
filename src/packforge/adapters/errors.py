from dataclasses import dataclass

from packforge.domain.types import JsonDict


@dataclass
class AdapterError(Exception):
    message: str
    details: JsonDict | None = None
    hint: str | None = None
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


class PackNotFoundError(AdapterError):
    pass


class UnknownRegistryError(PackNotFoundError):
    pass


class PackFetchError(AdapterError):
    pass


class PackReadError(AdapterError):
    pass


@dataclass
class PackParseError(AdapterError):
    code: str = "PACK_PARSE_FAILED"


class CyclicDependencyError(AdapterError):
    pass


class CommandNotFound(AdapterError):
    pass


class CommandTimeout(AdapterError):
    pass
