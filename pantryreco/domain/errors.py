# pantryreco/domain/errors.py


class SearchBackendError(Exception):
    """Any failure of the document-search round trip."""


class SearchBackendUnavailable(SearchBackendError):
    """Network failure, server selection failure or timeout. Not retried here."""


class MalformedSearchQuery(SearchBackendError):
    """The backend rejected the query itself: a bug in query construction."""
