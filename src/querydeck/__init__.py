"""querydeck: tenant-scoped item listing with search, related-field sorting and stable pages."""

__version__ = "0.3.0"
