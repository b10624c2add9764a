from enum import Enum


class SyncSystem(str, Enum):
    billing = "billing"
    crm = "crm"


class AccountEvent(str, Enum):
    login_success = "login-success"
    forgot_password = "forgot-password"
    change_password = "change-password"
    resend_confirmation = "resend-confirmation"
