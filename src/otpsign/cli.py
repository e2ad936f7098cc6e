"""
Command-line signing tool.

    otpsign CONFIG_FILE USER_JSON [--token T] [--code C] [--send-sms]
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .errors import ConfigError, IdentityError, LogSinkError, MessagingError
from .models import Identity
from .pipeline import SigningPipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="otpsign",
        description="Sign an HTML agreement with an SMS-confirmed simple electronic signature.",
    )
    parser.add_argument("config_file", help="Service configuration (key=value)")
    parser.add_argument("user_json", help="Signer identity JSON file")
    parser.add_argument("--token", help="Authorization token (defaults to the configured one)")
    parser.add_argument("--code", help="Confirmation code (generated when omitted)")
    parser.add_argument(
        "--send-sms",
        action="store_true",
        help="Deliver the code by SMS (test mode otherwise)",
    )
    parser.add_argument(
        "--require-all-fields",
        action="store_true",
        help="Require passport fields and email",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        identity = Identity.from_json(Path(args.user_json).read_text(encoding='utf-8'))
    except OSError as e:
        print(f"[-] FILE_IO_ERROR: cannot read {args.user_json}: {e}")
        return 1
    except IdentityError as e:
        print(f"[-] INVALID_JSON: {e}")
        return 1

    try:
        pipeline = SigningPipeline.from_config_file(args.config_file)
    except (ConfigError, LogSinkError, MessagingError) as e:
        print(f"[-] INIT_SERVICE_ERROR: {e}")
        return 1
    print(f"[+] Service initialized from {args.config_file}")

    with pipeline:
        if not pipeline.render_worker.initialize():
            print("[-] INIT_SERVICE_ERROR: render engine failed to start")
            return 1

        token = args.token or pipeline.get_config().auth_token
        code = args.code
        if not code:
            generated = pipeline.generate_confirmation_code(token)
            if generated.is_error:
                print(f"[-] {generated.error_code.value}: {generated.error_message}")
                return 1
            code = generated.value

        mode = "SMS delivery" if args.send_sms else "test mode"
        print(f"[*] Signing for {identity.full_name} ({mode})...")
        result = pipeline.sign_document(
            token,
            test_mode=not args.send_sms,
            require_all_fields=args.require_all_fields,
            identity=identity,
            confirmation_code=code,
        )

        if result.is_error:
            print(f"[-] {result.error_code.value}: {result.error_message}")
            return 1

        outcome = result.value
        print("[+] Document signed")
        print(f"    - Signer: {identity.full_name}")
        print(f"    - Phone: {outcome.phone_number}")
        print(f"    - Signing time: {outcome.signing_time}")
        print(f"    - Document hash: {outcome.document_hash}")
        print(f"    - Signed PDF: {outcome.signed_pdf_path}")
        return 0


if __name__ == "__main__":
    sys.exit(main())
