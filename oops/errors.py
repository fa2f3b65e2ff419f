class OopsError(Exception):
    """Base class for every failure the store reports."""


class NotInitializedError(OopsError):
    def __init__(self, file_name=""):
        self.file_name = file_name
        super().__init__(f"'{file_name}' is not tracked" if file_name else "file is not tracked")


class AlreadyExistsError(OopsError):
    def __init__(self, file_name=""):
        self.file_name = file_name
        super().__init__(f"'{file_name}' is already tracked" if file_name else "file is already tracked")


class NoChangesError(OopsError):
    def __init__(self):
        super().__init__("no changes to save")


class VersionNotFoundError(OopsError):
    def __init__(self, version):
        self.version = version
        super().__init__(f"snapshot #{version} not found")


class UncommittedChangesError(OopsError):
    def __init__(self):
        super().__init__("uncommitted changes exist")


class PathResolutionError(OopsError):
    """Storage location cannot be determined (e.g. no home directory)."""


class IntegrityError(OopsError):
    """Stored content cannot be read back as recorded."""


class NoTrackedFileError(OopsError):
    """No unambiguous tracked file for a CLI command."""


class UpdateError(OopsError):
    """Release lookup or upgrade failed."""
