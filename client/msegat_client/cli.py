import argparse
import os
import sys
import json
from typing import Any

from .logging_config import setup_logging
from .msegat_api_caller import (
    DEFAULT_ENCODING,
    MsegatConfig,
    MsegatError,
    PersonalizedOptions,
    get_default_config_dir,
)


def print_response(response: Any) -> None:
    print(json.dumps(response, indent=2, ensure_ascii=False))


def cmd_send_sms(args: argparse.Namespace) -> int:
    """Send a single SMS message"""
    try:
        client = MsegatConfig(args.config).to_client()
        response = client.send_message(args.to, args.message)
        print_response(response)
        return 0
    except MsegatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_send_vars(args: argparse.Namespace) -> int:
    """Send a personalized message to several numbers"""
    try:
        variables = json.loads(args.vars)
    except ValueError as e:
        print(f"Error: --vars is not valid JSON: {e}", file=sys.stderr)
        return 1
    if not isinstance(variables, list):
        print("Error: --vars must be a JSON array", file=sys.stderr)
        return 1

    options = PersonalizedOptions(
        time_to_send=args.time_to_send,
        exact_time=args.exact_time,
        msg_encoding=args.encoding,
        req_bulk_id=args.bulk_id,
        req_filter=args.filter,
    )

    try:
        client = MsegatConfig(args.config).to_client()
        response = client.send_personalized_messages(args.to, args.message, variables, options)
        print_response(response)
        return 0
    except MsegatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_cost(args: argparse.Namespace) -> int:
    """Calculate the cost of a message"""
    try:
        client = MsegatConfig(args.config).to_client()
        response = client.calculate_message_cost(args.contact_type, args.contacts, args.message,
                                                 args.by, args.encoding)
        print_response(response)
        return 0
    except MsegatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_otp_send(args: argparse.Namespace) -> int:
    try:
        client = MsegatConfig(args.config).to_client()
        result = client.send_otp_code(args.to, args.lang)
        print_response(result.raw)
        return 0
    except MsegatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_otp_verify(args: argparse.Namespace) -> int:
    try:
        client = MsegatConfig(args.config).to_client()
        result = client.verify_otp_code(args.code, args.id, args.lang)
        print_response(result.raw)
        return 0
    except MsegatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_init(args: argparse.Namespace) -> int:
    """Write a config file with the account credentials"""
    config_dir = args.config_dir or get_default_config_dir()
    config_path = os.path.join(config_dir, "config.json")

    print(f"Initializing Msegat client in: {config_dir}")

    try:
        os.makedirs(config_dir, exist_ok=True)
    except OSError as e:
        print(f"Failed to create config directory: {e}", file=sys.stderr)
        return 1

    if os.path.exists(config_path) and not args.force:
        print(f"Config file already exists: {config_path}")
        print("Use --force to overwrite existing files")
        return 1

    config_data = {
        "username": args.username,
        "api_key": args.api_key,
        "sender": args.sender,
        "timeout": args.timeout,
    }
    # Remove None values
    config_data = {k: v for k, v in config_data.items() if v is not None}

    try:
        with open(config_path, 'w') as f:
            json.dump(config_data, f, indent=2)
        os.chmod(config_path, 0o600)
    except OSError as e:
        print(f"Failed to create config file: {e}", file=sys.stderr)
        return 1

    print(f"Created config file: {config_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="msegat-cli", description="Msegat SMS gateway client utilities")
    p.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or WARNING)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Create a config file with account credentials")
    p_init.add_argument("--config-dir", help="Config directory (default: XDG_CONFIG_HOME/msegat or ~/.config/msegat)")
    p_init.add_argument("--username", required=True, help="Msegat account username")
    p_init.add_argument("--api-key", required=True, help="Msegat API key")
    p_init.add_argument("--sender", help="Sender name (default: almasah)")
    p_init.add_argument("--timeout", type=float, help="Request timeout in seconds (default: none)")
    p_init.add_argument("--force", action="store_true", help="Overwrite existing files")
    p_init.set_defaults(func=cmd_init)

    p_send = sub.add_parser("send", help="Send an SMS message to one number")
    p_send.add_argument("message", help="Message to send")
    p_send.add_argument("--to", required=True, help="Recipient phone number")
    p_send.add_argument("--config", default=None, help="Config file path (default: auto-detect from config directory)")
    p_send.set_defaults(func=cmd_send_sms)

    p_vars = sub.add_parser("send-vars", help="Send a personalized message to several numbers",
                            description="Send a message template to several numbers, substituting a set"
                            " of variables per recipient.")
    p_vars.add_argument("message", help="Message template, e.g. 'Hello {name}'")
    p_vars.add_argument("--to", required=True, nargs="+", help="Recipient phone numbers")
    p_vars.add_argument("--vars", required=True, help="JSON array of variable objects, e.g. '[{\"name\": \"John\"}]'")
    p_vars.add_argument("--time-to-send", help="'now' or 'later'")
    p_vars.add_argument("--exact-time", help="Send time when --time-to-send is 'later'")
    p_vars.add_argument("--encoding", help=f"Message encoding (default: {DEFAULT_ENCODING})")
    p_vars.add_argument("--bulk-id", help="Request bulk id")
    p_vars.add_argument("--filter", help="Request filter")
    p_vars.add_argument("--config", default=None, help="Config file path (default: auto-detect from config directory)")
    p_vars.set_defaults(func=cmd_send_vars)

    p_cost = sub.add_parser("cost", help="Calculate the cost of a message")
    p_cost.add_argument("message", help="Message text")
    p_cost.add_argument("--contact-type", default="numbers", help="Contact type (default: numbers)")
    p_cost.add_argument("--contacts", required=True, help="Contacts to price the message for")
    p_cost.add_argument("--by", default="Link", help="Calculation mode (default: Link)")
    p_cost.add_argument("--encoding", default=DEFAULT_ENCODING, help=f"Message encoding (default: {DEFAULT_ENCODING})")
    p_cost.add_argument("--config", default=None, help="Config file path (default: auto-detect from config directory)")
    p_cost.set_defaults(func=cmd_cost)

    p_otp = sub.add_parser("otp-send", help="Send an OTP code")
    p_otp.add_argument("--to", required=True, help="Recipient phone number")
    p_otp.add_argument("--lang", default="En", help="OTP message language, Ar or En (default: En)")
    p_otp.add_argument("--config", default=None, help="Config file path (default: auto-detect from config directory)")
    p_otp.set_defaults(func=cmd_otp_send)

    p_verify = sub.add_parser("otp-verify", help="Verify an OTP code")
    p_verify.add_argument("code", help="Code entered by the user")
    p_verify.add_argument("--id", required=True, help="OTP id returned by otp-send")
    p_verify.add_argument("--lang", default="En", help="Reply language, Ar or En (default: En)")
    p_verify.add_argument("--config", default=None, help="Config file path (default: auto-detect from config directory)")
    p_verify.set_defaults(func=cmd_otp_verify)

    return p


def main(argv=None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(log_level=args.log_level)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
