# Automatically load all models so metadata knows them
from app.models.user_model import User
from app.models.project_model import Project, FiscalYear
from app.models.unit_model import Unit
from app.models.installment_model import InstallmentDefinition, UserInstallment
from app.models.payment_model import Payment
from app.models.penalty_model import Penalty
from app.models.accounting_coding_model import (
    AccountGroup,
    AccountClass,
    AccountSubClass,
    AccountDetail,
)
from app.models.accounting_document_model import (
    AccountingDocument,
    AccountingEntry,
    CommonDescription,
)
from app.models.archive_model import (
    ArchivedProject,
    ArchivedUser,
    ArchivedUnit,
    ArchivedInstallmentDefinition,
    ArchivedUserInstallment,
    ArchivedPayment,
    ArchivedPenalty,
)
from app.models.activity_log_model import ActivityLog
from app.models.system_settings_model import SystemSetting
