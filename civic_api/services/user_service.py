"""
User Service - accounts, credentials and verification flows in Firestore.

Accounts are never hard-deleted. Registration always creates a citizen;
worker and admin accounts are provisioned by scripts/seed_db.py.
"""

from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from civic_api.config import collections
from civic_api.config.firebase import get_db
from civic_api.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from civic_api.core.permissions import Role, parse_role
from civic_api.core.settings import settings
from civic_api.services.notification_service import get_notification_service
from civic_api.utils.firestore_helpers import snapshot_to_dict, stream_documents, where_filter
from civic_api.utils.geo import parse_timestamp, utcnow
from civic_api.utils.security import (
    create_access_token,
    decode_access_token,
    generate_otp,
    generate_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

PUBLIC_FIELDS = ("name", "email", "phone", "role", "is_verified", "created_at", "updated_at")


def serialize_user(user: Dict) -> Dict:
    """Public view of an account. Credential material never leaves the service."""
    data = {"id": user["id"]}
    for field in PUBLIC_FIELDS:
        data[field] = user.get(field)
    return data


def user_summary(user: Optional[Dict], fields: Iterable[str] = ("name", "email")) -> Optional[Dict]:
    if not user:
        return None
    summary = {"id": user["id"]}
    for field in fields:
        summary[field] = user.get(field)
    return summary


def normalize_phone(phone_number: str) -> str:
    """Strip formatting but keep the leading + of E.164 numbers."""
    return phone_number.replace(" ", "").replace("-", "").replace("(", "").replace(")", "")


class UserService:
    """
    Service for account management in Firestore.
    """

    def __init__(self, db=None, notifications=None):
        self.db = db if db is not None else get_db()
        self.notifications = notifications or get_notification_service()

    @property
    def users(self):
        return self.db.collection(collections.USERS)

    # Lookups

    def get_user(self, user_id: str) -> Optional[Dict]:
        if not user_id:
            return None
        return snapshot_to_dict(self.users.document(user_id).get())

    def get_user_or_404(self, user_id: str) -> Dict:
        user = self.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _find_one(self, field: str, value) -> Optional[Dict]:
        for user in stream_documents(where_filter(self.users, field, "==", value).limit(1)):
            return user
        return None

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        return self._find_one("email", email.strip().lower())

    def get_user_by_phone(self, phone: str) -> Optional[Dict]:
        return self._find_one("phone", normalize_phone(phone))

    def get_summaries(self, user_ids: Iterable[Optional[str]], fields: Iterable[str] = ("name", "email")) -> Dict[str, Dict]:
        """Fetch each distinct account once; unknown ids are left out."""
        fields = tuple(fields)
        summaries = {}
        for user_id in {uid for uid in user_ids if uid}:
            summary = user_summary(self.get_user(user_id), fields)
            if summary:
                summaries[user_id] = summary
        return summaries

    def list_workers(self) -> List[Dict]:
        workers = [
            {
                "id": user["id"],
                "name": user.get("name"),
                "email": user.get("email"),
                "phone": user.get("phone"),
                "created_at": user.get("created_at"),
            }
            for user in stream_documents(where_filter(self.users, "role", "==", Role.WORKER.value))
        ]
        workers.sort(key=lambda w: (w.get("name") or "").lower())
        return workers

    # Creation and credentials

    def create_user(
        self,
        name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
        role: Role = Role.CITIZEN,
        is_verified: bool = False,
    ) -> Dict:
        """
        Create an account.

        Raises:
            ConflictError: If an account with this email already exists
        """
        email = email.strip().lower()
        if self.get_user_by_email(email):
            raise ConflictError("User already exists with this email")

        now = utcnow()
        user_ref = self.users.document()
        user_data = {
            "name": name.strip(),
            "email": email,
            "phone": normalize_phone(phone) if phone else None,
            "password_hash": hash_password(password),
            "role": parse_role(role).value,
            "is_verified": is_verified,
            "verification_token": None if is_verified else generate_token(),
            "otp": None,
            "otp_expires_at": None,
            "reset_password_token": None,
            "reset_password_expires": None,
            "created_at": now,
            "updated_at": now,
        }
        user_ref.set(user_data)
        user_data["id"] = user_ref.id

        logger.info(f"User created: {user_ref.id} ({user_data['role']})")
        return user_data

    def register(self, name: str, email: str, password: str, phone: Optional[str] = None) -> Dict:
        """Self-service citizen registration followed by a verification email."""
        user = self.create_user(name, email, password, phone=phone, role=Role.CITIZEN)
        self._send_verification_email(user)
        return user

    def authenticate(self, email: str, password: str) -> Tuple[str, Dict]:
        """
        Check credentials and issue a bearer token.

        Raises:
            AuthenticationError: Unknown email, wrong password or unverified account
        """
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.get("password_hash")):
            raise AuthenticationError("Invalid credentials")
        if not user.get("is_verified"):
            raise AuthenticationError("Please verify your email before logging in")
        return self.issue_token(user), user

    def issue_token(self, user: Dict) -> str:
        return create_access_token(user["id"], user.get("role", Role.CITIZEN.value))

    def resolve_token(self, token: str) -> Dict:
        """Return the account behind a bearer token; it must still exist."""
        payload = decode_access_token(token)
        user = self.get_user(payload["sub"])
        if not user:
            raise AuthenticationError("Account for this token no longer exists")
        return user

    # Email verification

    def verify_email(self, token: str) -> Dict:
        user = self._find_one("verification_token", token)
        if not user:
            raise ValidationError("Invalid or expired verification token")
        if user.get("is_verified"):
            raise ConflictError("Account is already verified")
        return self._update(user["id"], {"is_verified": True, "verification_token": None})

    def resend_verification(self, email: str) -> None:
        user = self.get_user_by_email(email)
        if not user:
            raise NotFoundError("User not found")
        if user.get("is_verified"):
            raise ConflictError("Account is already verified")
        user = self._update(user["id"], {"verification_token": generate_token()})
        self._send_verification_email(user)

    def _send_verification_email(self, user: Dict) -> None:
        link = f"{settings.FRONTEND_URL}/verify-email?token={user['verification_token']}"
        self.notifications.notify_safely(
            self.notifications.send_email,
            user["email"],
            f"Verify Your Account - {settings.EMAIL_FROM_NAME}",
            f"<h2>Welcome to {settings.EMAIL_FROM_NAME}!</h2>"
            f"<p>Please click the link below to verify your account:</p>"
            f'<a href="{link}">Verify Account</a>',
        )

    # Phone OTP

    def send_otp(self, phone: str) -> None:
        """
        Store a fresh OTP on the account and text it.

        Delivery is the whole point of this call, so a NotificationError
        propagates to the caller.
        """
        user = self.get_user_by_phone(phone)
        if not user:
            raise NotFoundError("No account is registered with this phone number")

        otp = generate_otp()
        self._update(user["id"], {
            "otp": otp,
            "otp_expires_at": utcnow() + timedelta(minutes=settings.OTP_EXPIRY_MINUTES),
        })
        self.notifications.send_sms(
            user["phone"],
            f"Your OTP for {settings.EMAIL_FROM_NAME} is: {otp}. "
            f"Valid for {settings.OTP_EXPIRY_MINUTES} minutes.",
        )

    def verify_otp(self, phone: str, otp: str) -> Tuple[str, Dict]:
        user = self.get_user_by_phone(phone)
        if not user or not user.get("otp") or user.get("otp") != otp:
            raise ValidationError("Invalid OTP")

        expires_at = parse_timestamp(user.get("otp_expires_at"))
        if expires_at is None or expires_at < utcnow():
            raise ValidationError("OTP has expired. Please request a new one.")

        user = self._update(user["id"], {
            "is_verified": True,
            "verification_token": None,
            "otp": None,
            "otp_expires_at": None,
        })
        logger.info(f"OTP verified for user {user['id']}")
        return self.issue_token(user), user

    # Password reset

    def forgot_password(self, email: str) -> None:
        user = self.get_user_by_email(email)
        if not user:
            raise NotFoundError("User not found")

        token = generate_token()
        self._update(user["id"], {
            "reset_password_token": token,
            "reset_password_expires": utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRY_MINUTES),
        })
        link = f"{settings.FRONTEND_URL}/reset-password?token={token}"
        self.notifications.send_email(
            user["email"],
            f"Password Reset - {settings.EMAIL_FROM_NAME}",
            "<h2>Password Reset Request</h2>"
            "<p>Click the link below to reset your password:</p>"
            f'<a href="{link}">Reset Password</a>'
            f"<p>This link will expire in {settings.RESET_TOKEN_EXPIRY_MINUTES} minutes.</p>",
        )

    def reset_password(self, token: str, password: str) -> None:
        user = self._find_one("reset_password_token", token)
        expires_at = parse_timestamp(user.get("reset_password_expires")) if user else None
        if not user or expires_at is None or expires_at < utcnow():
            raise ValidationError("Invalid or expired reset token")

        self._update(user["id"], {
            "password_hash": hash_password(password),
            "reset_password_token": None,
            "reset_password_expires": None,
        })
        logger.info(f"Password reset for user {user['id']}")

    # Profile

    def update_profile(self, user_id: str, name: Optional[str] = None, phone: Optional[str] = None) -> Dict:
        self.get_user_or_404(user_id)
        update_data = {}
        if name:
            update_data["name"] = name.strip()
        if phone:
            update_data["phone"] = normalize_phone(phone)
        if not update_data:
            raise ValidationError("Nothing to update")
        return self._update(user_id, update_data)

    def _update(self, user_id: str, update_data: Dict) -> Dict:
        user_ref = self.users.document(user_id)
        update_data["updated_at"] = utcnow()
        user_ref.update(update_data)
        return snapshot_to_dict(user_ref.get())


# Global service instance (singleton pattern)
_user_service = None


def get_user_service() -> UserService:
    """
    Get or create UserService singleton instance.

    Returns:
        UserService: The global user service instance
    """
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
