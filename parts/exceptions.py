class PartsError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(PartsError):
    # errors related to locating or reading the parts configuration.
    pass

class InvalidConfigSource(ConfigError):
    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"config source {value!r} is invalid: {reason}")

class ConfigFileDoesNotExist(ConfigError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"user-defined TOML config file value {value!r} does not exist")

class ConfigReadError(ConfigError):
    def __init__(self, path: str, error: OSError):
        self.path = path
        self.error = error
        super().__init__(f"could not read TOML file {path!r}: {error}")

class TomlSyntaxError(ConfigError):
    # the file exists but is not a valid TOML document.
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"TOML file {path!r} is malformed: {message}")

class KeysNotFound(ConfigError):
    def __init__(self, keys: str, key: str, path: str):
        self.keys = keys
        self.key = key
        self.path = path
        super().__init__(f"TOML file {path!r} does not contain keys {keys!r} (missing {key!r})")

class ValueIsNotTable(ConfigError):
    def __init__(self, path: str, keys: str):
        self.path = path
        self.keys = keys
        super().__init__(f"TOML file {path!r} does not contain (nested) tables as expected for keys {keys!r}")

class SchemaError(ConfigError):
    # the TOML document parsed but does not follow the parts schema.
    def __init__(self, origin: str, message: str):
        self.origin = origin
        super().__init__(f"invalid parts config in {origin!r}: {message}")

class NoConfigFileFound(ConfigError):
    def __init__(self, candidates=()):
        self.candidates = tuple(candidates)
        super().__init__("no TOML config file was found, use verbose output (`-v`) for more details")

class UnknownPart(PartsError):
    def __init__(self, part: str):
        self.part = part
        super().__init__(f"unknown part name: {part!r}")

class NoDefaultPart(PartsError):
    def __init__(self, origin: str):
        self.origin = origin
        super().__init__(f"no part name given and {origin!r} does not define a usable default part")

class PatternError(PartsError):
    # invalid glob or regex syntax; names the offending pattern.
    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"invalid pattern {pattern!r}: {reason}")

class OutputError(PartsError):
    # errors while writing matched paths to the output sink.
    pass
