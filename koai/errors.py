"""Error types shared across the assistant.

Lower layers raise these; the CLI handlers and the panel session are the only
places that catch them and show them to the user.
"""


class KoaiError(Exception):
    """Base class for every error the assistant reports to the user."""


class ConfigurationError(KoaiError):
    """Missing credential or invalid settings."""


class CompletionError(KoaiError):
    """The completion service could not produce an answer."""


class SubprocessError(KoaiError):
    """An external command is missing or exited with a non-zero status."""

    def __init__(self, message: str, exit_code: int = 1, stderr: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class GitError(SubprocessError):
    """git is not installed, or the directory is not a repository."""


class FileError(KoaiError):
    """Reading or writing a file failed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
