"""
Credential providers for authenticating store requests
"""
import logging
from typing import Optional
import boto3

from ..shared.interfaces import ICredentialProvider

logger = logging.getLogger(__name__)


class AwsCredentialProvider(ICredentialProvider):
    """
    Builds boto3 sessions from whichever credential source the caller picked

    With a profile name the shared config files are used, with an access key
    pair those static keys are used, and with neither boto3's default chain
    (environment, instance metadata, SSO...) applies.
    """

    def __init__(
        self,
        profile_name: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        session_token: Optional[str] = None,
        region_name: Optional[str] = None
    ):
        if bool(access_key_id) != bool(secret_access_key):
            raise ValueError("access_key_id and secret_access_key must be provided together")
        self.profile_name = profile_name
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.session_token = session_token
        self.region_name = region_name

    @property
    def method(self) -> str:
        if self.profile_name:
            return "profile"
        if self.access_key_id:
            return "static"
        return "default"

    def create_session(self) -> boto3.Session:
        logger.debug(f"Creating AWS session using {self.method} credentials")
        if self.profile_name:
            return boto3.Session(profile_name=self.profile_name, region_name=self.region_name)
        if self.access_key_id:
            return boto3.Session(
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
                aws_session_token=self.session_token,
                region_name=self.region_name
            )
        return boto3.Session(region_name=self.region_name)
