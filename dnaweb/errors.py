class DnaWebError(Exception):
    """Base class for errors that fail the processing of a single file."""


class MalformedTagError(DnaWebError):
    pass


class UnknownDirectiveError(DnaWebError):
    pass


class MissingIncludeError(DnaWebError):
    pass


class CircularReferenceError(DnaWebError):
    pass


class MalformedDataError(DnaWebError):
    pass


class UnresolvedVariableError(DnaWebError):
    pass


class ConfigurationError(DnaWebError):
    pass
