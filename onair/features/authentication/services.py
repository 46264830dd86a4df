import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import HTTPException, status
from jose import JWTError

from onair.core.errors import NotificationError
from onair.db.models.base import utcnow
from onair.db.models.users import User
from onair.db.repositories.refresh_tokens import RefreshTokenRepository
from onair.db.repositories.users import UserRepository
from onair.features.authentication.schemas import (
    ChangePasswordIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    RegisterOut,
    ResetPasswordIn,
    SessionOut,
    SignInIn,
    TokenPairOut,
)
from onair.features.notifications.services import NotificationSender
from onair.features.users.schemas import UserOut
from onair.security.password import hash_password, verify_password
from onair.security.tokens import (
    JWTSettings,
    decode_token,
    mint_token_pair,
    new_one_time_token,
    one_time_token_is_valid,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, you will receive a password reset link."


class AuthService:
    """
    Service d'authentification : orchestre les repositories, les tokens et les emails.
    Ne contient pas d'accès SQL direct et lève des HTTPException propres.
    Les heures sont en UTC naïf (cf. utcnow) pour rester comparables à ce que renvoie SQLite.
    """

    def __init__(
        self,
        *,
        user_repo: UserRepository,
        refresh_repo: RefreshTokenRepository,
        jwt_settings: JWTSettings,
        notifier: Optional[NotificationSender] = None,
        verification_ttl: timedelta = timedelta(hours=24),
        reset_ttl: timedelta = timedelta(minutes=60),
        now_fn: Callable[[], datetime] = utcnow,
    ):
        self.user_repo = user_repo
        self.refresh_repo = refresh_repo
        self.jwt = jwt_settings
        self.notifier = notifier
        self.verification_ttl = verification_ttl
        self.reset_ttl = reset_ttl
        self.now_fn = now_fn

    # ---------- helpers ----------

    def _issue_session(self, user: User, *, ip: Optional[str], user_agent: Optional[str]) -> SessionOut:
        pair, jti = mint_token_pair(user_id=user.id, email=user.email, role=user.role, settings=self.jwt)
        # Persist refresh (révocable)
        self.refresh_repo.create(
            jti=jti,
            user_id=user.id,
            expires_at=self.now_fn() + self.jwt.refresh_ttl,
            user_agent=user_agent,
            ip=ip,
        )
        return SessionOut(**pair, user=UserOut.model_validate(user))

    def _notify(self, action: str, send: Callable[[], None]) -> bool:
        if self.notifier is None:
            return False
        try:
            send()
            return True
        except NotificationError as exc:
            logger.error("Email '%s' not sent: %s", action, exc)
            return False

    # ---------- Register ----------
    def register(self, payload: RegisterIn) -> RegisterOut:
        email = payload.email.strip().lower()
        if self.user_repo.get_by_email(email):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

        name = (payload.name or "").strip() or "Artist"
        token = new_one_time_token()
        user = self.user_repo.create(
            email=email,
            hashed_password=hash_password(payload.password),
            name=name,
            artist_name=(payload.artist_name or "").strip() or name,
            role="artist",
            auth_provider="local",
            email_verified=False,
            verification_token=token,
            verification_token_expires=self.now_fn() + self.verification_ttl,
        )

        # L'inscription n'échoue pas si l'email ne part pas
        sent = self._notify("verification", lambda: self.notifier.send_verification(user.email, user.name, token))
        return RegisterOut(
            message="Registration complete. Check your email to verify your account.",
            email=user.email,
            email_sent=sent,
        )

    # ---------- Verify email ----------
    def verify_email(self, token: Optional[str], *, ip: Optional[str] = None, user_agent: Optional[str] = None) -> SessionOut:
        if not token:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing token")

        user = self.user_repo.get_by_verification_token(token)
        if not user or not one_time_token_is_valid(
            user.verification_token, user.verification_token_expires, now=self.now_fn()
        ):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired token")

        user = self.user_repo.update(
            user,
            email_verified=True,
            verification_token=None,
            verification_token_expires=None,
            last_login=self.now_fn(),
        )
        self._notify("welcome", lambda: self.notifier.send_welcome(user.email, user.name))
        return self._issue_session(user, ip=ip, user_agent=user_agent)

    def resend_verification(self, email: str) -> str:
        user = self.user_repo.get_by_email(email)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        if user.email_verified:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already verified")

        token = new_one_time_token()
        user = self.user_repo.update(
            user,
            verification_token=token,
            verification_token_expires=self.now_fn() + self.verification_ttl,
        )
        if self.notifier is not None:
            try:
                self.notifier.send_verification(user.email, user.name, token)
            except NotificationError as exc:
                logger.error("Verification email to %s not sent: %s", user.email, exc)
                raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not send email")
        return "Verification email sent."

    # ---------- Sign in ----------
    def sign_in(self, payload: SignInIn, *, ip: Optional[str] = None, user_agent: Optional[str] = None) -> SessionOut:
        user = self.user_repo.get_by_email(payload.email)
        if not user:
            # Ne pas révéler si l'utilisateur existe
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

        if user.auth_provider == "google" and not user.hashed_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This account uses Google sign-in",
            )

        if not verify_password(payload.password, user.hashed_password):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

        if not user.email_verified:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Email not verified. Check your inbox.",
            )

        user = self.user_repo.update(user, last_login=self.now_fn())
        return self._issue_session(user, ip=ip, user_agent=user_agent)

    # ---------- Refresh (rotation) ----------
    def refresh(self, payload: RefreshIn, *, ip: Optional[str] = None, user_agent: Optional[str] = None) -> TokenPairOut:
        try:
            decoded = decode_token(payload.refresh_token, self.jwt)
        except JWTError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

        if decoded.get("typ") != "refresh":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")

        jti = decoded.get("jti")
        if not jti:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

        # Vérifier en base (existe, non révoqué, non expiré)
        rec = self.refresh_repo.get_by_jti(jti)
        if not rec or rec.revoked_at is not None or rec.expires_at <= self.now_fn():
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token invalid")

        user = self.user_repo.get(int(decoded["sub"]))
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        # Rotation : révoquer l'ancien et émettre un nouveau couple
        self.refresh_repo.revoke(jti)
        session = self._issue_session(user, ip=ip, user_agent=user_agent)
        return TokenPairOut(**session.model_dump(exclude={"user"}))

    # ---------- Logout ----------
    def log_out(self, payload: LogoutIn) -> None:
        try:
            decoded = decode_token(payload.refresh_token, self.jwt)
        except JWTError:
            # Logout idempotent : silencieux si token illisible
            return

        if decoded.get("typ") != "refresh" or not decoded.get("jti"):
            return
        self.refresh_repo.revoke(decoded["jti"])

    # ---------- Current user depuis access token ----------
    def get_current_user(self, *, access_token: str) -> User:
        try:
            decoded = decode_token(access_token, self.jwt)
        except JWTError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

        if decoded.get("typ") != "access":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")

        user = self.user_repo.get(int(decoded["sub"]))
        if not user:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
        return user

    # ---------- Changement de mot de passe ----------
    def change_password(self, *, user_id: int, payload: ChangePasswordIn) -> None:
        user = self.user_repo.get(user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        if not verify_password(payload.old_password, user.hashed_password):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

        user = self.user_repo.update(user, hashed_password=hash_password(payload.new_password))
        self.refresh_repo.revoke_all_for_user(user.id)
        self._notify("password_changed", lambda: self.notifier.send_password_changed(user.email, user.name))

    # ---------- Mot de passe oublié ----------
    def forgot_password(self, email: str) -> str:
        """Même message que le compte existe ou non."""
        user = self.user_repo.get_by_email(email)
        if not user:
            return FORGOT_PASSWORD_MESSAGE

        if user.auth_provider == "google" and not user.hashed_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This account uses Google sign-in",
            )

        token = new_one_time_token()
        user = self.user_repo.update(
            user,
            reset_password_token=token,
            reset_password_expires=self.now_fn() + self.reset_ttl,
        )
        if self.notifier is not None:
            try:
                self.notifier.send_password_reset(user.email, user.name, token)
            except NotificationError as exc:
                logger.error("Password reset email to %s not sent: %s", user.email, exc)
                self.user_repo.update(user, reset_password_token=None, reset_password_expires=None)
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Could not send the reset email",
                )
        return FORGOT_PASSWORD_MESSAGE

    def reset_password(self, payload: ResetPasswordIn) -> str:
        if not payload.token or not payload.password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token and password are required")
        if len(payload.password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            )

        user = self.user_repo.get_by_reset_token(payload.token)
        if not user or not one_time_token_is_valid(
            user.reset_password_token, user.reset_password_expires, now=self.now_fn()
        ):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired token")

        user = self.user_repo.update(
            user,
            hashed_password=hash_password(payload.password),
            reset_password_token=None,
            reset_password_expires=None,
        )
        self.refresh_repo.revoke_all_for_user(user.id)
        self._notify("password_changed", lambda: self.notifier.send_password_changed(user.email, user.name))
        return "Password reset successfully. You can now sign in."
