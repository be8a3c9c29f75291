"""비즈니스 로직 서비스 - export only."""

from .impl import CacheStore, TaxonomyStore, YamlSessionDirectory, build_session_context

__all__ = ["CacheStore", "TaxonomyStore", "YamlSessionDirectory", "build_session_context"]
