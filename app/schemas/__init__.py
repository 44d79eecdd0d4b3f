"""
Pydantic schemas for request/response validation.
"""
from app.schemas.common import (
    PaginatedResponse, MessageResponse, HealthResponse
)
from app.schemas.user import (
    UserCreate, UserLogin, UserResponse, TokenResponse,
    UserUpdate, PasswordChange, NotificationResponse
)
from app.schemas.campaign import (
    CampaignCreate, CampaignUpdate, CampaignResponse
)
from app.schemas.payment_method import (
    PaymentMethodCreate, PaymentMethodResponse
)
from app.schemas.donation import (
    DonationCreate, DonationResponse, DonationStateUpdate
)
from app.schemas.subscription import (
    SubscriptionCreate, SubscriptionUpdate, SubscriptionResponse
)
from app.schemas.reward import (
    RewardCreate, RewardUpdate, RewardResponse, AssignmentResponse
)
from app.schemas.receipt import ReceiptResponse
from app.schemas.invoice import (
    FiscalDataCreate, FiscalDataResponse, InvoiceResponse
)
from app.schemas.configuration import (
    ConfigCreate, ConfigUpdate, ConfigResponse
)
from app.schemas.statistics import MonthlyStatisticsResponse

__all__ = [
    "PaginatedResponse", "MessageResponse", "HealthResponse",
    "UserCreate", "UserLogin", "UserResponse", "TokenResponse",
    "UserUpdate", "PasswordChange", "NotificationResponse",
    "CampaignCreate", "CampaignUpdate", "CampaignResponse",
    "PaymentMethodCreate", "PaymentMethodResponse",
    "DonationCreate", "DonationResponse", "DonationStateUpdate",
    "SubscriptionCreate", "SubscriptionUpdate", "SubscriptionResponse",
    "RewardCreate", "RewardUpdate", "RewardResponse", "AssignmentResponse",
    "ReceiptResponse",
    "FiscalDataCreate", "FiscalDataResponse", "InvoiceResponse",
    "ConfigCreate", "ConfigUpdate", "ConfigResponse",
    "MonthlyStatisticsResponse",
]
