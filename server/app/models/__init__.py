from .organization import Organization  # noqa: F401
from .member import Member  # noqa: F401
from .event import Event  # noqa: F401
from .attendance import Attendance  # noqa: F401
from .ledger import LedgerEntry  # noqa: F401
