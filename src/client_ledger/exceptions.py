"""Exception hierarchy for the client ledger."""


class ClientLedgerError(Exception):
    """Base exception for the client ledger."""
    pass


class ValidationError(ClientLedgerError):
    """Input rejected before any I/O happens."""
    pass


class PersistenceError(ClientLedgerError):
    """A read or write against the store failed or had no effect."""
    pass


class ClientNotFoundError(PersistenceError):
    """Raised when a client cannot be found."""
    pass


class DuplicateClientError(PersistenceError):
    """Raised when a client code is already taken."""
    pass


class TransactionNotFoundError(PersistenceError):
    """Raised when a transaction cannot be found."""
    pass


class DocumentGenerationError(ClientLedgerError):
    """PDF or CSV construction failed."""
    pass


class DeliveryError(ClientLedgerError):
    """An artifact could not be handed over."""
    pass


class ShareUnavailableError(DeliveryError):
    """Sharing was declined or is not supported here."""
    pass


class AuthorizationError(ClientLedgerError):
    """The PIN challenge was not passed."""
    pass
