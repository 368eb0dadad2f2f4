"""
Msegat API Client Module

This module provides functionality to send SMS messages and OTP codes through
the Msegat gateway. Every operation builds a JSON payload from the caller's
arguments plus the stored credentials, posts it to a fixed Msegat endpoint and
returns the parsed JSON reply.
"""

import os
import json
import requests
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .logging_config import get_logger, log_sms_event

logger = get_logger(__name__)

DEFAULT_SENDER = "almasah"
DEFAULT_ENCODING = "UTF8"

SEND_SMS_URL = "https://www.msegat.com/gw/sendsms.php"
SEND_VARS_URL = "https://www.msegat.com/gw/sendVars.php"
CALCULATE_COST_URL = "https://www.msegat.com/gw/calculateCost.php"
SEND_OTP_URL = "https://www.msegat.com/gw/sendOTPCode.php"
VERIFY_OTP_URL = "https://www.msegat.com/gw/verifyOTPCode.php"


class MsegatError(Exception):
    """Base class for all Msegat client errors"""


class ConfigurationError(MsegatError):
    """Raised when a required credential or sender is missing"""


class RequestError(MsegatError):
    """Raised when a call to the Msegat API fails"""


@dataclass(frozen=True)
class MsegatCredentials:
    """Account credentials attached to every request"""
    username: str
    api_key: str
    sender: str


@dataclass(frozen=True)
class PersonalizedOptions:
    """
    Optional fields for a personalized (sendVars) request.

    A field is only written to the payload when it is not None.
    """
    time_to_send: Optional[str] = None
    exact_time: Optional[str] = None
    msg_encoding: Optional[str] = None
    req_bulk_id: Optional[str] = None
    req_filter: Optional[str] = None

    _FIELD_NAMES = (
        ("time_to_send", "timeToSend"),
        ("exact_time", "exactTime"),
        ("msg_encoding", "msgEncoding"),
        ("req_bulk_id", "reqBulkId"),
        ("req_filter", "reqFilter"),
    )

    def to_payload(self) -> Dict[str, str]:
        """Return the supplied options keyed by their Msegat field names"""
        fields = {}
        for attr, vendor_name in self._FIELD_NAMES:
            value = getattr(self, attr)
            if value is not None:
                fields[vendor_name] = value
        return fields


@dataclass(frozen=True)
class OTPSendResult:
    """Reply of sendOTPCode; fields are read from the body but not validated"""
    code: Any = None
    id: Any = None
    message: Optional[str] = None
    raw: Any = None

    @classmethod
    def from_response(cls, data: Any) -> "OTPSendResult":
        if not isinstance(data, dict):
            return cls(raw=data)
        return cls(code=data.get("code"), id=data.get("id"), message=data.get("message"), raw=data)


@dataclass(frozen=True)
class OTPVerifyResult:
    """Reply of verifyOTPCode; fields are read from the body but not validated"""
    code: Any = None
    message: Optional[str] = None
    raw: Any = None

    @classmethod
    def from_response(cls, data: Any) -> "OTPVerifyResult":
        if not isinstance(data, dict):
            return cls(raw=data)
        return cls(code=data.get("code"), message=data.get("message"), raw=data)


class MsegatClient:
    """Client for the Msegat SMS gateway"""

    def __init__(self, username: str, api_key: str, sender: Optional[str] = None,
                 timeout: Optional[float] = None):
        if sender is None:
            sender = DEFAULT_SENDER

        if not username:
            raise ConfigurationError("Please add msegat username in the environment variables.")
        if not sender:
            raise ConfigurationError("Please add msegat user sender in the environment variables.")
        if not api_key:
            raise ConfigurationError("Please add msegat API key in the environment variables.")

        self._credentials = MsegatCredentials(username=username, api_key=api_key, sender=sender)
        self.timeout = timeout

    @property
    def credentials(self) -> MsegatCredentials:
        return self._credentials

    def post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        """
        POST a JSON payload and return the parsed JSON reply.

        Only one attempt is made and the HTTP status code is not inspected.
        Connection failures and unparseable bodies raise RequestError.
        """
        body = json.dumps(payload)
        headers = {"Content-Type": "application/json"}

        logger.debug(f"POST {url} ({len(body)} bytes)")

        try:
            response = requests.post(url, data=body, headers=headers, timeout=self.timeout)
            result = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.debug(f"Request to {url} failed: {e}")
            raise RequestError(f"Problem with request: {e}") from e

        logger.debug(f"Response from {url}: HTTP {response.status_code}")
        return result

    def build_message_payload(self, number: str, message: str) -> Dict[str, Any]:
        """Payload for a single sendsms request"""
        return {
            "userName": self._credentials.username,
            "numbers": number,
            "userSender": self._credentials.sender,
            "apiKey": self._credentials.api_key,
            "msg": message,
            "msgEncoding": DEFAULT_ENCODING,
        }

    def build_personalized_payload(self, numbers: List[str], message: str, variables: List[Dict[str, Any]],
                                   options: Optional[PersonalizedOptions] = None) -> Dict[str, Any]:
        """
        Payload for a sendVars request.

        numbers and variables are copied verbatim; their lengths are not compared.
        """
        options = options or PersonalizedOptions()
        payload = {
            "userName": self._credentials.username,
            "apiKey": self._credentials.api_key,
            "numbers": numbers,
            "userSender": self._credentials.sender,
            "msg": message,
            "msgEncoding": DEFAULT_ENCODING,
            "vars": variables,
        }
        payload.update(options.to_payload())
        return payload

    def build_cost_payload(self, contact_type: str, contacts: str, message: str, by: str,
                           encoding: str) -> Dict[str, Any]:
        return {
            "userName": self._credentials.username,
            "apiKey": self._credentials.api_key,
            "contactType": contact_type,
            "contacts": contacts,
            "msg": message,
            "by": by,
            "msgEncoding": encoding,
        }

    def build_otp_send_payload(self, number: str, lang: str) -> Dict[str, Any]:
        return {
            "lang": lang,
            "userName": self._credentials.username,
            "number": number,
            "apiKey": self._credentials.api_key,
            "userSender": self._credentials.sender,
        }

    def build_otp_verify_payload(self, code: str, otp_id: Any, lang: str) -> Dict[str, Any]:
        return {
            "lang": lang,
            "userName": self._credentials.username,
            "apiKey": self._credentials.api_key,
            "code": code,
            "id": otp_id,
            "userSender": self._credentials.sender,
        }

    def send_message(self, number: str, message: str) -> Any:
        """Send a message to a single number"""
        payload = self.build_message_payload(number, message)

        try:
            result = self.post_json(SEND_SMS_URL, payload)
        except RequestError as e:
            log_sms_event("sms_failed", to_number=number, sender=self._credentials.sender,
                          success=False, error=str(e))
            raise RequestError(f"Error sending message: {e}") from e

        log_sms_event("sms_sent", to_number=number, sender=self._credentials.sender)
        return result

    def send_personalized_messages(self, numbers: List[str], message: str, variables: List[Dict[str, Any]],
                                   options: Optional[PersonalizedOptions] = None) -> Any:
        """Send a message template to several numbers with per-recipient variables"""
        payload = self.build_personalized_payload(numbers, message, variables, options)

        try:
            result = self.post_json(SEND_VARS_URL, payload)
        except RequestError as e:
            log_sms_event("bulk_sms_failed", recipients=len(numbers), sender=self._credentials.sender,
                          success=False, error=str(e))
            raise RequestError(f"Error sending personalized messages: {e}") from e

        log_sms_event("bulk_sms_sent", recipients=len(numbers), sender=self._credentials.sender)
        return result

    def calculate_message_cost(self, contact_type: str, contacts: str, message: str, by: str,
                               encoding: str) -> Any:
        """Ask the gateway what sending a message would cost"""
        payload = self.build_cost_payload(contact_type, contacts, message, by, encoding)

        try:
            return self.post_json(CALCULATE_COST_URL, payload)
        except RequestError as e:
            raise RequestError(f"Error calculating message cost: {e}") from e

    def send_otp_code(self, number: str, lang: str) -> OTPSendResult:
        """Have the gateway generate and send an OTP code to a number"""
        payload = self.build_otp_send_payload(number, lang)

        try:
            result = self.post_json(SEND_OTP_URL, payload)
        except RequestError as e:
            log_sms_event("otp_failed", to_number=number, sender=self._credentials.sender,
                          success=False, error=str(e))
            raise RequestError(f"Error sending OTP code: {e}") from e

        log_sms_event("otp_sent", to_number=number, sender=self._credentials.sender)
        return OTPSendResult.from_response(result)

    def verify_otp_code(self, code: str, otp_id: Any, lang: str) -> OTPVerifyResult:
        """Check a code the user entered against a previously sent OTP"""
        payload = self.build_otp_verify_payload(code, otp_id, lang)

        try:
            result = self.post_json(VERIFY_OTP_URL, payload)
        except RequestError as e:
            raise RequestError(f"Error verifying OTP code: {e}") from e

        return OTPVerifyResult.from_response(result)


class MsegatConfig:
    """Credentials for the Msegat client, read from a config file and the environment"""

    def __init__(self, config_path: Optional[str] = None):
        if config_path is None:
            # Try environment variable first
            config_path = os.environ.get("MSEGAT_CONFIG")
            if config_path is None:
                config_path = os.path.join(get_default_config_dir(), "config.json")

        self.config_path = config_path
        self.username: str = ""
        self.api_key: str = ""
        self.sender: Optional[str] = None
        self.timeout: Optional[float] = None

        self._load_config()

    def _load_config(self):
        """Load configuration from file, then apply environment overrides"""
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r') as f:
                    config_data = json.load(f)
            except (OSError, ValueError) as e:
                raise ConfigurationError(f"Invalid config file {self.config_path}: {e}") from e

            if not isinstance(config_data, dict):
                raise ConfigurationError(f"Invalid config file {self.config_path}: expected a JSON object")

            self.username = config_data.get('username', "")
            self.api_key = config_data.get('api_key', "")
            self.sender = config_data.get('sender')
            self.timeout = config_data.get('timeout')

        self.username = os.environ.get("MSEGAT_USERNAME", self.username)
        self.api_key = os.environ.get("MSEGAT_API_KEY", self.api_key)
        self.sender = os.environ.get("MSEGAT_USER_SENDER", self.sender)

    def to_client(self) -> MsegatClient:
        """Build a client; raises ConfigurationError if a credential is missing"""
        return MsegatClient(self.username, self.api_key, self.sender, timeout=self.timeout)


def get_default_config_dir() -> str:
    """Get the default configuration directory following XDG standards"""
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return os.path.join(xdg_config_home, "msegat")

    home = os.environ.get("HOME")
    if home:
        return os.path.join(home, ".config", "msegat")

    return os.path.join(os.getcwd(), ".config", "msegat")


def load_config(config_path: Optional[str] = None) -> MsegatConfig:
    """
    Reads a config file and the MSEGAT_* environment variables

    Args:
        config_path: Path to the configuration file

    Returns:
        MsegatConfig: Configuration object
    """
    return MsegatConfig(config_path)


def send_sms(config: MsegatConfig, number: str, message: str) -> Any:
    """
    Send an SMS message to a single number

    Args:
        config: Msegat configuration
        number: Recipient phone number
        message: The message to send

    Returns:
        The parsed response from Msegat
    """
    client = config.to_client()
    return client.send_message(number, message)


def send_otp(config: MsegatConfig, number: str, lang: str = "En") -> OTPSendResult:
    """
    Send an OTP code to a single number

    Args:
        config: Msegat configuration
        number: Recipient phone number
        lang: Language of the OTP message ("Ar" or "En")

    Returns:
        OTPSendResult: code, id and message from the gateway
    """
    client = config.to_client()
    return client.send_otp_code(number, lang)
