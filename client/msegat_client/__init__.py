"""
Msegat Client

A Python client library for the Msegat SMS and OTP gateway.
"""

from .msegat_api_caller import (
    MsegatClient,
    MsegatConfig,
    MsegatCredentials,
    MsegatError,
    ConfigurationError,
    RequestError,
    PersonalizedOptions,
    OTPSendResult,
    OTPVerifyResult,
    load_config,
    send_sms,
    send_otp,
)

__all__ = [
    'MsegatClient',
    'MsegatConfig',
    'MsegatCredentials',
    'MsegatError',
    'ConfigurationError',
    'RequestError',
    'PersonalizedOptions',
    'OTPSendResult',
    'OTPVerifyResult',
    'load_config',
    'send_sms',
    'send_otp',
]

__version__ = "0.1.0"
