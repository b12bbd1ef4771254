"""
api/routes/users.py -- Account, login and logout REST endpoints.

Routes:
  POST   /login            -- exact-match login; sets session cookie + X-Auth-Token
  DELETE /logout           -- clears the session identity (requires login)
  POST   /users/register   -- create an account
  PUT    /users            -- update username/password (requires login)
  DELETE /users/{id}       -- delete an account (requires login)
  GET    /users            -- list accounts (302)
  GET    /users/{id}       -- one account (302)

Security:
  POST /login is rate-limited per IP (Settings.login_rate_limit).
  Cache-Control: no-store on login responses.
  LoginFailed is the same for unknown username and wrong password.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.extract import validated_body
from api.limiter import limiter
from api.models import AccountResponse, LoggedIdentityResponse, LoginUser, RegisterUser, UpdateUser
from auth.dependencies import get_session, require_login
from auth.models import Account, LoggedIdentity
from auth.session import SessionState, bounded_session
from auth.store import AccountStore
from auth.tokens import log_in, log_out
from core.config import get_settings
from core.errors import UsernameTaken, UserNotFound, UsersEmpty

# Auth policy:
# - POST   /login:            public -- login endpoint must be unauthenticated
# - DELETE /logout:           requires login (require_login)
# - POST   /users/register:   public
# - PUT    /users:            requires login
# - DELETE /users/{id}:       requires login
# - GET    /users, /users/{id}: public
router = APIRouter()


# ---------------------------------------------------------------------------
# Session endpoints
# ---------------------------------------------------------------------------


@limiter.limit(get_settings().login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/login", response_model=LoggedIdentityResponse)
def login(
    request: Request,
    body: LoginUser = Depends(validated_body(LoginUser)),
) -> JSONResponse:
    """Authenticate with username and password; bind the identity into the session cookie.

    The token is returned three ways: in the JSON body, in the X-Auth-Token
    header, and (sealed) inside the session cookie. Clients send it back as
    Authorization: Bearer <token> together with the cookie.

    An unreadable session cookie is replaced rather than reported.
    """
    store: AccountStore = request.app.state.account_store
    with bounded_session(request, writable=True) as session:
        identity = log_in(store, session, body.username, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoggedIdentityResponse.from_identity(identity).model_dump(),
    )
    resp.headers["X-Auth-Token"] = str(identity.token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.delete("/logout")
def logout(
    identity: LoggedIdentity = Depends(require_login),
    session: SessionState = Depends(get_session),
) -> JSONResponse:
    """Forget the identity. The favorite slot, if any, is kept."""
    log_out(session)
    return JSONResponse(content={"message": "Logged out."})


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@router.post("/users/register", response_model=AccountResponse, status_code=201)
def register(
    request: Request,
    body: RegisterUser = Depends(validated_body(RegisterUser)),
) -> AccountResponse:
    store: AccountStore = request.app.state.account_store
    try:
        account = store.create_account(Account(username=body.username, password=body.password))
    except IntegrityError as exc:
        raise UsernameTaken() from exc
    return AccountResponse.from_account(account)


@router.put("/users")
def update_user(
    request: Request,
    identity: LoggedIdentity = Depends(require_login),
    body: UpdateUser = Depends(validated_body(UpdateUser)),
) -> Response:
    """Overwrite an account's credentials. 304 when no account has that id.

    A changed account derives a different token, so the caller's current
    session keeps working only until they log in again.
    """
    store: AccountStore = request.app.state.account_store
    try:
        num_modified = store.update_account(body.id, body.username, body.password)
    except IntegrityError as exc:
        raise UsernameTaken() from exc
    if num_modified == 0:
        return Response(status_code=304)
    return Response(content=f"Updated {num_modified} users.", media_type="text/plain")


@router.delete("/users/{user_id}")
def delete_user(
    request: Request,
    user_id: int,
    identity: LoggedIdentity = Depends(require_login),
) -> Response:
    store: AccountStore = request.app.state.account_store
    num_modified = store.delete_account(user_id)
    if num_modified == 0:
        return Response(status_code=304)
    return Response(content=f"Deleted {num_modified} users.", media_type="text/plain")


@router.get("/users")
def list_users(request: Request) -> JSONResponse:
    store: AccountStore = request.app.state.account_store
    accounts = store.list_accounts()
    if not accounts:
        raise UsersEmpty()
    return JSONResponse(
        status_code=302,
        content=[AccountResponse.from_account(a).model_dump() for a in accounts],
    )


@router.get("/users/{user_id}")
def get_user(request: Request, user_id: int) -> JSONResponse:
    store: AccountStore = request.app.state.account_store
    account = store.get_by_id(user_id)
    if account is None:
        raise UserNotFound(user_id)
    return JSONResponse(status_code=302, content=AccountResponse.from_account(account).model_dump())
