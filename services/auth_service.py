from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from fastapi import HTTPException, status
import os
from dotenv import load_dotenv
import bcrypt

from core.actor import ActorContext, Role
from models.parties import Cliente
from models.user import User

load_dotenv()

SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_NEXOR_DEV_KEY")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class AuthService:
    """Service layer for authentication and actor resolution."""

    @staticmethod
    def _password_bytes(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        try:
            return bcrypt.checkpw(AuthService._password_bytes(plain_password), hashed_password.encode("utf-8"))
        except ValueError:
            return False

    @staticmethod
    def get_password_hash(password: str) -> str:
        return bcrypt.hashpw(AuthService._password_bytes(password), bcrypt.gensalt(rounds=12)).decode("utf-8")

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> dict:
        """Verify JWT token and return payload."""
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError:
            raise credentials_exception
        if payload.get("sub") is None:
            raise credentials_exception
        return payload

    @staticmethod
    def authenticate_user(email: str, password: str, db: Session) -> User:
        """Authenticate user by email and password."""
        user = db.query(User).filter(User.email == email).first()  # type: ignore

        if not user or not AuthService.verify_password(password, str(user.hashed_password)):
            raise HTTPException(
                status_code=401,
                detail="Incorrect email or password"
            )
        if not user.is_active:
            raise HTTPException(status_code=403, detail="Inactive user")
        return user

    @staticmethod
    def get_user_from_token(token: str, db: Session) -> User:
        payload = AuthService.verify_token(token)
        email = str(payload["sub"])

        user = db.query(User).filter(User.email == email).first()  # type: ignore
        if user is None:
            raise HTTPException(status_code=401, detail="User not found")
        if not user.is_active:
            raise HTTPException(status_code=403, detail="Inactive user")
        return user

    @staticmethod
    def build_actor(user: User, db: Session) -> ActorContext:
        """Resolve a user row into the actor context used by the workflow."""
        try:
            role = Role.parse(user.role)
        except ValueError:
            raise HTTPException(status_code=403, detail=f"Unknown role: {user.role}")

        linked_entity_id = None
        represented = frozenset()
        if role == Role.ARMAZEM:
            linked_entity_id = user.armazem_id
        elif role == Role.CLIENTE:
            linked_entity_id = user.cliente_id
        elif role == Role.REPRESENTANTE:
            linked_entity_id = user.representante_id
            if linked_entity_id is not None:
                rows = db.query(Cliente.id).filter(Cliente.representante_id == linked_entity_id).all()
                represented = frozenset(row[0] for row in rows)

        return ActorContext(
            user_id=user.id,
            role=role,
            linked_entity_id=linked_entity_id,
            represented_client_ids=represented,
            email=user.email,
        )
