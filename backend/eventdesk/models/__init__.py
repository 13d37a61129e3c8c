# Import models here so Alembic can discover metadata.
from eventdesk.models.guest import Guest  # noqa: F401
from eventdesk.models.role_configuration import RoleConfiguration  # noqa: F401

# Ledger
from eventdesk.models.guest_revenue import GuestRevenue  # noqa: F401
from eventdesk.models.guest_upsale_history import GuestUpsaleHistory  # noqa: F401
from eventdesk.models.guest_payment import GuestPayment  # noqa: F401

# Service sales
from eventdesk.models.service import Service  # noqa: F401
from eventdesk.models.guest_service import GuestService  # noqa: F401
from eventdesk.models.service_payment import ServicePayment  # noqa: F401
