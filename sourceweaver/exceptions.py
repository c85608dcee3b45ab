class SourceWeaverError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(SourceWeaverError):
    # errors related to configuration.
    pass

class ScanRootError(ConfigError):
    # the scan root is missing or is not a directory. fatal, raised before any traversal.
    pass

class DiscoveryError(SourceWeaverError):
    # errors during file discovery.
    pass

class FileClassificationError(DiscoveryError):
    # a single file could not be read for classification.
    def __init__(self, path, reason: str):
        super().__init__(f"cannot classify '{path}': {reason}")
        self.path = path
        self.reason = reason

class OutputError(SourceWeaverError):
    # errors during output operations.
    pass
