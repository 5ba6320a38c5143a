"""API Dependencies - Authentication"""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from domain.auth import CallerIdentity, User, UserInDB
from domain.enums import Role
from infrastructure.security import decode_access_token, get_password_hash
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Demo identities; the real identity provider sits outside this service
fake_users_db = {
    "admin": {
        "user_id": "user_admin",
        "username": "admin",
        "full_name": "Admin User",
        "email": "admin@example.com",
        "plain_password": "admin123",
        "role": Role.ADMIN,
        "verification_status": "unverified",
        "disabled": False,
    },
    "owner": {
        "user_id": "user_owner",
        "username": "owner",
        "full_name": "Item Owner",
        "email": "owner@example.com",
        "plain_password": "owner123",
        "role": Role.USER,
        "verification_status": "verified",
        "disabled": False,
    },
    "renter": {
        "user_id": "user_renter",
        "username": "renter",
        "full_name": "Verified Renter",
        "email": "renter@example.com",
        "plain_password": "renter123",
        "role": Role.USER,
        "verification_status": "verified",
        "disabled": False,
    },
    "newcomer": {
        "user_id": "user_newcomer",
        "username": "newcomer",
        "full_name": "Unverified Renter",
        "email": "newcomer@example.com",
        "plain_password": "newcomer123",
        "role": Role.USER,
        "verification_status": "unverified",
        "disabled": False,
    },
}

# Passwords are hashed lazily on first lookup
_password_hash_cache = {}


def _get_hashed_password(username: str) -> str:
    if username not in _password_hash_cache:
        user = fake_users_db.get(username)
        if user and "plain_password" in user:
            _password_hash_cache[username] = get_password_hash(user["plain_password"])
    return _password_hash_cache.get(username, "")


def get_user(db, username: str):
    if username in db:
        user_dict = db[username].copy()
        if "plain_password" in user_dict:
            user_dict["hashed_password"] = _get_hashed_password(username)
            del user_dict["plain_password"]
        return UserInDB(**user_dict)
    return None


async def get_current_user(token: str = Depends(oauth2_scheme)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception

    user = get_user(fake_users_db, username=token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)):
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


async def get_caller_identity(current_user: User = Depends(get_current_active_user)) -> CallerIdentity:
    """Resolve the caller once per request; the core only sees this value"""
    return current_user.to_identity()
