"""Error taxonomy. Each error carries the process exit code it maps to."""


class SupplyError(Exception):
    exit_code = 1


class ConfigurationError(SupplyError):
    """Out-of-range or inconsistent settings, detected before any bus traffic."""
    exit_code = 1


class FileError(SupplyError):
    """The output file could not be created, written or confirmed."""
    exit_code = 4


class LinkError(SupplyError):
    """Bus-level open/write/read failure. Always fatal to the run."""
    exit_code = 5


class DecodeError(LinkError):
    """Instrument answered, but not with a parseable field."""
