"""Prometheus metrics for the application"""
from prometheus_client import Counter, REGISTRY


def _counter(name: str, documentation: str, labelnames=()):
    # Re-importing the module (reloads, test collection) must not register twice
    try:
        return Counter(name, documentation, labelnames)
    except ValueError:
        return REGISTRY._names_to_collectors.get(name)


healthcheck_requests_counter = _counter(
    'videotube_healthcheck_requests',
    'Total number of healthcheck requests',
    ['route']
)

login_attempts_counter = _counter(
    'videotube_login_attempts',
    'Total number of login attempts',
    ['status']
)

media_uploads_counter = _counter(
    'videotube_media_uploads',
    'Total number of media files pushed to the CDN',
    ['kind', 'status']
)

search_queries_counter = _counter(
    'videotube_search_queries',
    'Total number of full-text search queries',
    ['status']
)

search_sync_events_counter = _counter(
    'videotube_search_sync_events',
    'Total number of change events applied to the search index',
    ['index', 'operation', 'status']
)
