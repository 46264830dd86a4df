from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, Response, status

from onair.api.v1.dependencies import (
    ClientContext,
    get_auth_service,
    get_client_ip_and_ua,
    get_current_user,
)
from onair.core.config import settings
from onair.db.models.users import User
from onair.features.authentication.schemas import (
    ChangePasswordIn,
    EmailIn,
    LogoutIn,
    MessageOut,
    RefreshIn,
    RegisterIn,
    RegisterOut,
    ResetPasswordIn,
    SessionOut,
    SignInIn,
    TokenPairOut,
)
from onair.features.authentication.services import AuthService
from onair.features.users.schemas import UserOut

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={404: {"description": "Not Found"}},
)


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        samesite=settings.AUTH_COOKIE_SAMESITE,
        secure=settings.AUTH_COOKIE_SECURE,
        max_age=settings.AUTH_COOKIE_MAX_AGE,
        path=settings.AUTH_COOKIE_PATH,
    )

# -----------------------------
# Register / vérification email
# -----------------------------
@router.post(
    "/register",
    summary="Créer un compte artiste (non vérifié)",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterOut,
    responses={409: {"description": "Email déjà utilisé"}},
)
def register(payload: RegisterIn, svc: AuthService = Depends(get_auth_service)):
    return svc.register(payload)


@router.get(
    "/verify-email",
    summary="Vérifier l'email (lien reçu par mail)",
    description="Marque le compte vérifié et ouvre une session.",
    response_model=SessionOut,
)
def verify_email(
    response: Response,
    token: Optional[str] = Query(default=None),
    svc: AuthService = Depends(get_auth_service),
    client_ctx: ClientContext = Depends(get_client_ip_and_ua),
):
    session = svc.verify_email(token, ip=client_ctx.ip, user_agent=client_ctx.user_agent)
    _set_refresh_cookie(response, session.refresh_token)
    return session


@router.post(
    "/resend-verification",
    summary="Renvoyer l'email de vérification",
    response_model=MessageOut,
)
def resend_verification(payload: EmailIn, svc: AuthService = Depends(get_auth_service)):
    return MessageOut(message=svc.resend_verification(payload.email))

# -----------------------------
# Sign-in
# -----------------------------
@router.post(
    "/sign-in",
    summary="Se connecter",
    description="Retourne un couple access/refresh. Le refresh est aussi posé en cookie httpOnly.",
    response_model=SessionOut,
    responses={
        400: {"description": "Identifiants invalides ou compte Google"},
        403: {"description": "Email non vérifié"},
    },
)
def sign_in(
    payload: SignInIn,
    response: Response,
    svc: AuthService = Depends(get_auth_service),
    client_ctx: ClientContext = Depends(get_client_ip_and_ua),
):
    session = svc.sign_in(payload, ip=client_ctx.ip, user_agent=client_ctx.user_agent)
    _set_refresh_cookie(response, session.refresh_token)
    return session

# -----------------------------
# Refresh (rotation)
# -----------------------------
@router.post(
    "/refresh",
    summary="Renouveler les tokens (rotation)",
    description="Lit le refresh dans le body **ou** dans le cookie httpOnly.",
    response_model=TokenPairOut,
)
def refresh(
    response: Response,
    payload: Optional[RefreshIn] = None,
    refresh_cookie: Optional[str] = Cookie(default=None, alias=settings.AUTH_REFRESH_COOKIE_NAME),
    svc: AuthService = Depends(get_auth_service),
    client_ctx: ClientContext = Depends(get_client_ip_and_ua),
):
    # Priorité payload > cookie (permet aussi d'appeler depuis un client non-navigateur)
    refresh_token = (payload.refresh_token if payload else None) or refresh_cookie
    if not refresh_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing refresh token")

    pair = svc.refresh(
        RefreshIn(refresh_token=refresh_token),
        ip=client_ctx.ip,
        user_agent=client_ctx.user_agent,
    )
    _set_refresh_cookie(response, pair.refresh_token)
    return pair

# -----------------------------
# Logout
# -----------------------------
@router.post(
    "/logout",
    summary="Se déconnecter (révocation du refresh)",
    status_code=status.HTTP_204_NO_CONTENT,
)
def logout(
    response: Response,
    payload: Optional[LogoutIn] = None,
    refresh_cookie: Optional[str] = Cookie(default=None, alias=settings.AUTH_REFRESH_COOKIE_NAME),
    svc: AuthService = Depends(get_auth_service),
):
    refresh_token = (payload.refresh_token if payload else None) or refresh_cookie
    if refresh_token:
        svc.log_out(LogoutIn(refresh_token=refresh_token))
    # Supprime le cookie côté client
    response.delete_cookie(key=settings.AUTH_REFRESH_COOKIE_NAME, path=settings.AUTH_COOKIE_PATH)
    return None

# -----------------------------
# Me (profil courant)
# -----------------------------
@router.get(
    "/me",
    summary="Récupérer l'utilisateur courant",
    response_model=UserOut,
    responses={
        200: {"description": "Utilisateur courant"},
        401: {"description": "Token invalide ou expiré"},
    },
)
def me(user: User = Depends(get_current_user)):
    return user

# -----------------------------
# Mots de passe
# -----------------------------
@router.post(
    "/change-password",
    summary="Changer le mot de passe",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        204: {"description": "Mot de passe changé"},
        400: {"description": "Mot de passe actuel incorrect"},
        401: {"description": "Token invalide"},
    },
)
def change_password(
    payload: ChangePasswordIn,
    user: User = Depends(get_current_user),
    svc: AuthService = Depends(get_auth_service),
):
    svc.change_password(user_id=user.id, payload=payload)
    return None


@router.post(
    "/forgot-password",
    summary="Demander un lien de réinitialisation",
    description="Réponse identique que le compte existe ou non.",
    response_model=MessageOut,
)
def forgot_password(payload: EmailIn, svc: AuthService = Depends(get_auth_service)):
    return MessageOut(message=svc.forgot_password(payload.email))


@router.post(
    "/reset-password",
    summary="Réinitialiser le mot de passe avec le token reçu",
    response_model=MessageOut,
)
def reset_password(payload: ResetPasswordIn, svc: AuthService = Depends(get_auth_service)):
    return MessageOut(message=svc.reset_password(payload))
