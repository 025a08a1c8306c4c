from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from boxgen.core.config import BASE_DIR, KERNEL_CONFIG_FILE_PATH

if TYPE_CHECKING:
    from boxgen.db.profiles import ProfileStore
    from boxgen.db.registries import RulesetRegistry, SubscriptionRegistry
    from boxgen.kernel.generator import GenerationContext
    from boxgen.storage.blob import FileBlobStore


class AppContext:
    """
    Central application context.
    Contains the blob store, the profile store and the registries.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self._base_dir = base_dir or BASE_DIR
        self._blob_store: Optional['FileBlobStore'] = None
        self._profiles: Optional['ProfileStore'] = None
        self._subscriptions: Optional['SubscriptionRegistry'] = None
        self._rulesets: Optional['RulesetRegistry'] = None

        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        """Application root directory."""
        return self._base_dir

    @property
    def blob_store(self) -> 'FileBlobStore':
        """File storage rooted at the base directory."""
        if self._blob_store is None:
            from boxgen.storage.blob import FileBlobStore
            self._blob_store = FileBlobStore(self._base_dir)
        return self._blob_store

    @property
    def profiles(self) -> 'ProfileStore':
        """Profile store (lazy loading)."""
        if self._profiles is None:
            from boxgen.db.profiles import ProfileStore
            self._profiles = ProfileStore(self.blob_store)
            self._profiles.load()
        return self._profiles

    @property
    def subscriptions(self) -> 'SubscriptionRegistry':
        """Subscription registry (lazy loading)."""
        if self._subscriptions is None:
            from boxgen.db.registries import SubscriptionRegistry
            self._subscriptions = SubscriptionRegistry(self.blob_store)
            self._subscriptions.load()
        return self._subscriptions

    @property
    def rulesets(self) -> 'RulesetRegistry':
        """Ruleset registry (lazy loading)."""
        if self._rulesets is None:
            from boxgen.db.registries import RulesetRegistry
            self._rulesets = RulesetRegistry(self.blob_store)
            self._rulesets.load()
        return self._rulesets

    def generation_context(self) -> 'GenerationContext':
        """Snapshot of the registries for one generation run."""
        from boxgen.kernel.generator import GenerationContext
        return GenerationContext(
            blob_store=self.blob_store,
            subscriptions=self.subscriptions.snapshot(),
            rulesets=self.rulesets.snapshot(),
        )

    def generate_config_file(
        self,
        profile_id: str,
        path: str = KERNEL_CONFIG_FILE_PATH,
    ) -> dict[str, Any]:
        """Generate and write kernel config for a stored profile."""
        from boxgen.kernel.generator import generate_config_file

        profile = self.profiles.get(profile_id)
        if profile is None:
            raise KeyError(f"Profile {profile_id} not found")
        return generate_config_file(profile, self.generation_context(), path)


_context: Optional[AppContext] = None


def get_context() -> AppContext:
    """
    Get global application context.
    Creates context with default settings if not initialized.
    """
    global _context
    if _context is None:
        _context = AppContext()
    return _context


def init_context(base_dir: Optional[Path] = None) -> AppContext:
    """
    Initialize global context.
    Should be called once at application startup.
    """
    global _context
    _context = AppContext(base_dir=base_dir)
    return _context


def reset_context() -> None:
    """Reset context (for tests)."""
    global _context
    _context = None
