from nido.models.base import Base  # noqa: F401

from nido.models.owner import Owner  # noqa: F401
from nido.models.listing import Listing  # noqa: F401
from nido.models.payment import Payment, PaymentEvent  # noqa: F401
from nido.models.verification import Verification  # noqa: F401
from nido.models.notification import ScheduledNotification  # noqa: F401
from nido.models.audit_log import AuditLog  # noqa: F401
