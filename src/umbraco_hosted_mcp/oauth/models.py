"""Data model shared by the authorize, callback and refresh flows."""

from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class AuthorizationRequest(BaseModel):
    """Pending authorization request from the downstream MCP client."""

    model_config = ConfigDict(frozen=True)

    response_type: str = "code"
    client_id: str
    redirect_uri: str
    scope: List[str] = Field(default_factory=list)
    state: str = ""
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None
    resource: Optional[Union[str, List[str]]] = None


class OAuthStateRecord(BaseModel):
    """
    Ephemeral record stored under a single-use state key.

    Either a full flow record (auth_request + code_verifier, written on
    approval) or a consent marker (client_id only, written when the consent
    screen is shown).
    """

    auth_request: Optional[AuthorizationRequest] = None
    code_verifier: Optional[str] = None
    client_id: Optional[str] = None


class BackendTokenRecord(BaseModel):
    """Token response from the Umbraco backoffice token endpoint."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None


class AuthProps(BaseModel):
    """
    Props handed back to the outer provider after a successful callback.

    Holds a reference to the stored tokens, never the tokens themselves.
    """

    umbraco_token_key: str
    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None


@dataclass
class CallbackResult:
    """Outcome of a completed callback, used to finish the downstream grant."""

    props: AuthProps
    auth_request: AuthorizationRequest
