from app.schemas.auth_schemas import LoginRequest, TokenOut
from app.schemas.user_schemas import (
    UserCreate,
    UserUpdate,
    UserOut,
    PenaltySettingsIn,
    PenaltySettingsOut,
)
from app.schemas.project_schemas import (
    ProjectCreate,
    ProjectUpdate,
    ProjectOut,
    FiscalYearCreate,
    FiscalYearUpdate,
    FiscalYearOut,
    MemberAdd,
    MemberUpdate,
    MemberOut,
)
from app.schemas.installment_schemas import (
    DefinitionCreate,
    DefinitionUpdate,
    DefinitionOut,
    UserInstallmentCreate,
    UserInstallmentUpdate,
    UserInstallmentOut,
)
from app.schemas.payment_schemas import (
    MemberPaymentCreate,
    MemberPaymentResult,
    PaymentCreate,
    PaymentUpdate,
    PaymentOut,
)
from app.schemas.penalty_schemas import (
    PenaltyCreate,
    PenaltyUpdate,
    PenaltyOut,
    PenaltyCalculationRequest,
)
from app.schemas.settings_schema import SettingPatch, SettingCreate, SettingOut
