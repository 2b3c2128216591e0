class ConfigurationError(Exception):
    """Raised when the configuration is missing or unusable"""

    pass


class FileOperationError(Exception):
    """Raised when file operations fail"""

    pass


class ScanError(Exception):
    """Raised when a disk entry is neither a regular file nor a directory"""

    pass


class FileNotFoundInStoreError(Exception):
    """Raised when a file id does not match any stored file"""

    pass
