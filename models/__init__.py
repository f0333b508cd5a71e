# models/__init__.py
from .user import UserRole, UserStatus, RegisterRequest, LoginRequest, ChangePasswordRequest, BlockUserRequest, MAX_PASSWORD_BYTES, password_too_long
from .service import ServiceStatus, ServiceUpdate
from .job import JobStatus, JobUpdate
from .application import ApplicationStatus, ApplicationStatusUpdate
from .order import OrderStatus, PaymentMethod, PaymentDetails, ServiceOrderRequest, CheckoutRequest
from .review import ReviewCreate

__all__ = [
    "UserRole", "UserStatus", "RegisterRequest", "LoginRequest", "ChangePasswordRequest", "BlockUserRequest",
    "MAX_PASSWORD_BYTES", "password_too_long",
    "ServiceStatus", "ServiceUpdate",
    "JobStatus", "JobUpdate",
    "ApplicationStatus", "ApplicationStatusUpdate",
    "OrderStatus", "PaymentMethod", "PaymentDetails", "ServiceOrderRequest", "CheckoutRequest",
    "ReviewCreate",
]
