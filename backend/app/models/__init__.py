# Import models here so Alembic can discover metadata.
from app.models.user import User  # noqa: F401

# Tenant aggregate
from app.models.tenant import Tenant  # noqa: F401
from app.models.tenant_profile import (  # noqa: F401
    AccreditationInfo,
    Address,
    ContactPerson,
    SchoolInfo,
    TenantContactInfo,
    TenantLocation,
)
from app.models.tenant_subscription import (  # noqa: F401
    BillingInfo,
    FeatureLimits,
    SubscriptionLimits,
    TenantSubscription,
    TrialInfo,
)
from app.models.tenant_configuration import (  # noqa: F401
    ApiSettings,
    PasswordPolicy,
    SystemSettings,
    TenantConfiguration,
    TenantCustomizations,
    TenantFeatures,
    TenantLimits,
)
from app.models.tenant_compliance import (  # noqa: F401
    ComplianceCertification,
    ComplianceInfo,
    SecurityIncident,
    SecuritySettings,
)
from app.models.tenant_usage import TenantBranding, TenantUsage  # noqa: F401
from app.models.tenant_integrations import (  # noqa: F401
    AnalyticsIntegration,
    CommunicationIntegration,
    CustomIntegration,
    LmsIntegration,
    PaymentGatewayIntegration,
    SsoIntegration,
    TenantIntegrations,
)

# Academic calendar, access workflow, marketing
from app.models.school_year import SchoolYear  # noqa: F401
from app.models.tenant_access_request import TenantAccessRequest  # noqa: F401
from app.models.waitlist_subscriber import WaitlistSubscriber  # noqa: F401
