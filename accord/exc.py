class Error(Exception):
    """ Baseclass for accord exceptions."""


class StoreError(Error):
    """ Raised when the document store backend fails to read or write."""
