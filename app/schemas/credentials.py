from pydantic import ConfigDict, Field

from app.schemas.base import BaseSchema


class AppStoreCredentials(BaseSchema):
    """
    App Store Server API credentials.

    Used to authenticate with Apple's App Store Server API
    for transaction lookups.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    private_key: str = Field(
        ...,
        description="Content of the .p8 In-App Purchase key",
    )
    key_id: str = Field(
        ...,
        description="Key ID of the In-App Purchase key (10-character string)",
    )
    issuer_id: str = Field(
        ...,
        description="Issuer ID from App Store Connect (UUID format)",
    )
    bundle_id: str = Field(
        ...,
        description="App bundle identifier",
    )


class AppStoreConnectCredentials(BaseSchema):
    """
    App Store Connect API credentials.

    A separate team key is required for the App Store Connect API;
    its tokens carry no bundle id.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    private_key: str
    key_id: str
    issuer_id: str
