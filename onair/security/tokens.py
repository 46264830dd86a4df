import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, TypedDict

from jose import jwt, JWTError

# ==========================================================
# 🔧 Configuration : paramètres de génération/validation JWT
# ==========================================================

@dataclass(frozen=True)
class JWTSettings:
    """
    Configuration des tokens JWT.

    - `secret` : clé secrète pour signer/valider les tokens
    - `issuer` : émetteur (utilisé dans le payload)
    - `algorithm` : algo de signature (HS256 recommandé)
    - `access_ttl` : durée de vie d’un access token
    - `refresh_ttl` : durée de vie d’un refresh token
    """
    secret: str
    issuer: str = "onair-api"
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=60)
    refresh_ttl: timedelta = timedelta(days=7)


# ==========================================================
# 🧱 Types
# ==========================================================

class TokenPair(TypedDict):
    access_token: str
    refresh_token: str
    token_type: str     # "bearer"
    expires_in: int     # durée de vie de l'access token (en secondes)

class DecodedToken(TypedDict, total=False):
    iss: str
    sub: str            # identifiant utilisateur (ou clé d'objet pour typ=upload)
    email: str
    role: str
    typ: str            # "access" | "refresh" | "upload"
    jti: str
    iat: int
    exp: int


# ==========================================================
# 🧩 Fonctions utilitaires
# ==========================================================

def _now() -> datetime:
    """Renvoie l'heure UTC actuelle."""
    return datetime.now(timezone.utc)

def new_jti() -> str:
    """Crée un identifiant unique pour un token."""
    return str(uuid.uuid4())


# ==========================================================
# 🎟️ Génération des tokens
# ==========================================================

def create_access_token(*, user_id: int, email: str, role: str, settings: JWTSettings) -> str:
    now = _now()
    payload: DecodedToken = {
        "iss": settings.issuer,
        "sub": str(user_id),
        "email": email,
        "role": role,
        "typ": "access",
        "jti": new_jti(),
        "iat": int(now.timestamp()),
        "exp": int((now + settings.access_ttl).timestamp()),
    }
    return jwt.encode(payload, settings.secret, algorithm=settings.algorithm)


def create_refresh_token(*, user_id: int, email: str, jti: str, settings: JWTSettings) -> str:
    """
    Crée un refresh token JWT long.
    Le JTI est fourni pour être stocké côté serveur (révocable).
    """
    now = _now()
    payload: DecodedToken = {
        "iss": settings.issuer,
        "sub": str(user_id),
        "email": email,
        "typ": "refresh",
        "jti": jti,
        "iat": int(now.timestamp()),
        "exp": int((now + settings.refresh_ttl).timestamp()),
    }
    return jwt.encode(payload, settings.secret, algorithm=settings.algorithm)


def create_upload_token(*, key: str, expires_in: int, settings: JWTSettings) -> str:
    """
    Jeton d'upload pour le stockage disque local : autorise un PUT sur `key`
    jusqu'à expiration. Équivalent d'une URL présignée S3.
    """
    now = _now()
    payload: DecodedToken = {
        "iss": settings.issuer,
        "sub": key,
        "typ": "upload",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    return jwt.encode(payload, settings.secret, algorithm=settings.algorithm)


# ==========================================================
# 🔍 Décodage / Validation
# ==========================================================

def decode_token(token: str, settings: JWTSettings) -> DecodedToken:
    """
    Décode et valide un token JWT (signature + expiration).
    Lève JWTError en cas de signature invalide ou expirée.
    """
    decoded = jwt.decode(
        token,
        settings.secret,
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )
    return decoded  # type: ignore[return-value]


def upload_token_matches(token: str, key: str, settings: JWTSettings) -> bool:
    try:
        decoded = decode_token(token, settings)
    except JWTError:
        return False
    return decoded.get("typ") == "upload" and decoded.get("sub") == key


# ==========================================================
# 🔑 Tokens à usage unique (vérification email, reset mot de passe)
# ==========================================================

def new_one_time_token() -> str:
    return secrets.token_hex(32)


def one_time_token_is_valid(
    token: Optional[str],
    expires_at: Optional[datetime],
    *,
    now: datetime,
) -> bool:
    """Valide si le token est présent ET non expiré. Rien d'autre n'est déduit."""
    if not token or expires_at is None:
        return False
    return expires_at > now


# ==========================================================
# 🪙 Utilitaire pratique pour générer un couple complet
# ==========================================================

def mint_token_pair(*, user_id: int, email: str, role: str, settings: JWTSettings) -> tuple[TokenPair, str]:
    """
    Génère un couple (access_token + refresh_token) cohérent.
    Retourne aussi le JTI du refresh, à persister via le repository.
    """
    access_token = create_access_token(user_id=user_id, email=email, role=role, settings=settings)
    jti = new_jti()
    refresh_token = create_refresh_token(user_id=user_id, email=email, jti=jti, settings=settings)

    pair: TokenPair = {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": int(settings.access_ttl.total_seconds()),
    }
    return pair, jti
