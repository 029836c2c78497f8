"""Environment checks run before generating files."""

import os
import stat
from pathlib import Path

from ginie.model.validation import ValidationError

SUSPICIOUS_ENV_MARKERS = ("AWS_", "GCP_", "AZURE_", "SECRET", "PASSWORD", "TOKEN", "KEY")


def security_check(directory: Path | None = None, environ: dict[str, str] | None = None) -> list[str]:
    """Check the working environment.

    Args:
        directory: Directory files will be generated in. Defaults to cwd.
        environ: Environment to inspect. Defaults to os.environ.

    Returns:
        Warning messages for non-fatal findings

    Raises:
        ValidationError: If the directory is world-writable
    """
    if directory is None:
        directory = Path.cwd()
    if environ is None:
        environ = dict(os.environ)

    warnings: list[str] = []

    if hasattr(os, "getuid") and os.getuid() == 0:
        warnings.append("Running as root user is not recommended")

    try:
        mode = directory.stat().st_mode
    except OSError:
        warnings.append(f"Could not check permissions of {directory}")
    else:
        if mode & stat.S_IWOTH:
            raise ValidationError(
                "INSECURE_DIRECTORY",
                f"{directory} is world-writable",
            )

    suspicious = sorted(name for name in environ if any(marker in name for marker in SUSPICIOUS_ENV_MARKERS))
    if suspicious:
        warnings.append(
            f"Secret-looking environment variables are set ({', '.join(suspicious)}); "
            "consider using .env files instead"
        )

    return warnings
