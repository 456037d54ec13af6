"""Service locator for shared server components."""

from pathlib import Path
from typing import Optional

from appserver import config
from appserver.classifier import ContentClassifier, create_classifier
from appserver.locks import KeyedLockRegistry
from appserver.repositories.entry_repository import EntryRepository

_entry_repository: Optional[EntryRepository] = None
_lock_registry: Optional[KeyedLockRegistry] = None
_classifier: Optional[ContentClassifier] = None


def set_entry_repository(repository: EntryRepository):
    """Set global entry repository instance"""
    global _entry_repository
    _entry_repository = repository


def get_entry_repository() -> EntryRepository:
    """Get global entry repository instance, built from config on first use"""
    global _entry_repository
    if _entry_repository is None:
        _entry_repository = EntryRepository(Path(config.DATA_PATH))
    return _entry_repository


def set_lock_registry(registry: KeyedLockRegistry):
    """Set global append lock registry instance"""
    global _lock_registry
    _lock_registry = registry


def get_lock_registry() -> KeyedLockRegistry:
    """Get global append lock registry instance"""
    global _lock_registry
    if _lock_registry is None:
        _lock_registry = KeyedLockRegistry()
    return _lock_registry


def set_classifier(classifier: ContentClassifier):
    """Set global content classifier instance"""
    global _classifier
    _classifier = classifier


def get_classifier() -> ContentClassifier:
    """Get global content classifier instance, built from config on first use"""
    global _classifier
    if _classifier is None:
        _classifier = create_classifier(config.CLASSIFIER, timeout=config.CLASSIFIER_TIMEOUT_SECONDS)
    return _classifier


def reset():
    """Drop all instances so the next lookup rebuilds them from config"""
    global _entry_repository, _lock_registry, _classifier
    _entry_repository = None
    _lock_registry = None
    _classifier = None
