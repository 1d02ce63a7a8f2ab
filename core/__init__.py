"""
Core helpers for recording and verifying installed module files.
"""

from .errors import AccessError, InstalledModuleError, PathError, RegistryFormatError  # noqa: F401
from .file_fingerprint import FileFingerprint  # noqa: F401
from .install_root import InstallRoot, RootResolver  # noqa: F401
from .installed_module import InstalledPackageRecord  # noqa: F401
from .registry_store import RegistryStore  # noqa: F401
