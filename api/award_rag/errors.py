class AwardRagError(Exception):
    """Base class for errors raised by award_rag itself."""


class ConfigError(AwardRagError):
    pass


class RecordFormatError(AwardRagError):
    """The CSV header does not match any known column layout."""
