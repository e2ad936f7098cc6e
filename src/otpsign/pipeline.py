"""
SMS-OTP signing pipeline.

Orchestrates one signature: authorization, identity validation, HTML
population and rendering, confirmation delivery, composite hashing and
stamping. Every public operation returns a Result; no exception crosses
this boundary.
"""

import shutil
import threading
from pathlib import Path
from typing import List, Optional, Union

import structlog

from .audit import LogSink
from .config import (
    CONTROL_CODE_LOG_ON,
    CONTROL_CODES,
    DEFAULT_CODE_LENGTH,
    SIGNED_PDF_PREFIX,
    TEMP_HTML_PREFIX,
    TEMP_PDF_PREFIX,
)
from .errors import (
    ErrorCode,
    HashBindingError,
    LogSinkError,
    MessagingError,
    TemplateError,
)
from .hashing import HashBinder, constant_time_equals
from .messaging import IqSmsMessagingService, MessagingService
from .models import (
    ConfirmationContext,
    Identity,
    PreparedDocument,
    ProviderSendingResult,
    SigningOutcome,
    StampPayload,
)
from .render import PyMuPdfRenderer, RenderOptions, RenderWorker
from .result import Result
from .settings import ServiceConfig, load_config
from .stamping import PdfStamper, Stamper
from .templates import TemplateCache, TemplateProcessor
from .utils.files import cleanup_files, ensure_directory, unique_path
from .utils.time import now_with_offset

logger = structlog.get_logger()

_LOG_PREFIX = "SigningPipeline: "


class SigningPipeline:
    """
    Signs documents with a simple electronic signature confirmed by SMS.

    Concurrent sign_document calls are supported. The configuration
    snapshot is re-read at each step, so a concurrent update_config may
    be observed part-way through a call.
    """

    def __init__(
        self,
        config: ServiceConfig,
        render_worker: RenderWorker,
        messaging: MessagingService,
        stamper: Stamper,
        log_sink: LogSink,
        template_processor: Optional[TemplateProcessor] = None,
        hash_binder: Optional[HashBinder] = None,
        accept_control_codes: bool = True,
        owns_render_worker: bool = False,
    ):
        """
        Initialize pipeline.

        Args:
            config: Initial configuration snapshot
            render_worker: Worker serializing HTML to PDF conversion
            messaging: Confirmation code delivery backend
            stamper: Visible stamp backend
            log_sink: Service log
            template_processor: HTML template population (a private cache is created if omitted)
            hash_binder: Composite hash calculator
            accept_control_codes: Interpret LOG_ON / LOG_OFF confirmation codes as log toggles
            owns_render_worker: Shut the worker down in close()
        """
        self._config = config
        self._config_lock = threading.Lock()
        self._messaging_lock = threading.Lock()

        self.render_worker = render_worker
        self.messaging = messaging
        self.stamper = stamper
        self.log_sink = log_sink
        self.template_processor = template_processor or TemplateProcessor(TemplateCache())
        self.hash_binder = hash_binder or HashBinder()
        self.accept_control_codes = accept_control_codes
        self.owns_render_worker = owns_render_worker

        ensure_directory(config.temp_dir)
        ensure_directory(config.output_dir)

    @classmethod
    def from_config_file(
        cls,
        config_path: Union[str, Path],
        render_options: Optional[RenderOptions] = None,
        accept_control_codes: bool = True,
    ) -> 'SigningPipeline':
        """
        Build a pipeline with the default collaborators.

        The render worker is created but not initialized; call
        pipeline.render_worker.initialize() before signing.

        Raises:
            ConfigError: If the configuration file is missing or invalid
            LogSinkError: If the log file cannot be opened
            MessagingError: If the credentials or message template cannot be read
        """
        config = load_config(config_path)
        log_sink = LogSink(config.log_file_path)
        try:
            messaging = IqSmsMessagingService(
                config.credentials_path,
                config.message_template_path,
            )
        except MessagingError:
            log_sink.close()
            raise

        return cls(
            config=config,
            render_worker=RenderWorker(PyMuPdfRenderer(), render_options),
            messaging=messaging,
            stamper=PdfStamper(config.fonts_dir),
            log_sink=log_sink,
            accept_control_codes=accept_control_codes,
            owns_render_worker=True,
        )

    # ==================== Configuration ====================

    def get_config(self) -> ServiceConfig:
        with self._config_lock:
            return self._config

    def _authorize(self, token: str) -> Optional[Result]:
        expected = self.get_config().auth_token
        if not isinstance(token, str) or not constant_time_equals(expected, token):
            return Result.error(ErrorCode.INVALID_AUTH_TOKEN, "Invalid authorization token")
        return None

    def update_config(self, token: str, new_config: ServiceConfig) -> Result[None]:
        """Replace the configuration snapshot. Paths are not validated."""
        denied = self._authorize(token)
        if denied is not None:
            return denied

        with self._config_lock:
            self._config = new_config
        self.log_sink.info(_LOG_PREFIX + "configuration updated")
        return Result.success()

    def set_messaging_credentials(self, token: str, login: str, password: str) -> Result[bool]:
        denied = self._authorize(token)
        if denied is not None:
            return denied

        try:
            with self._messaging_lock:
                saved = self.messaging.set_credentials(login, password)
        except Exception as e:
            logger.error("set_credentials_failed", error=str(e))
            saved = False

        if not saved:
            self.log_sink.error(_LOG_PREFIX + "messaging credentials update failed")
            return Result.error(
                ErrorCode.CREDENTIALS_ERROR,
                "The message service credentials could not be set",
            )
        self.log_sink.info(_LOG_PREFIX + "messaging credentials updated")
        return Result.success(True)

    def generate_confirmation_code(self, token: str, length: int = DEFAULT_CODE_LENGTH) -> Result[str]:
        denied = self._authorize(token)
        if denied is not None:
            return denied

        try:
            with self._messaging_lock:
                code = self.messaging.generate_confirmation_code(length)
        except Exception as e:
            logger.error("generate_code_failed", error=str(e))
            return Result.error(ErrorCode.UNKNOWN_ERROR, f"Confirmation code generation failed: {e}")
        return Result.success(code)

    # ==================== Logging control ====================

    def set_logging_enabled(self, token: str, enabled: bool) -> Result[bool]:
        """
        Turn the service log on or off.

        Returns:
            Result carrying the new state
        """
        denied = self._authorize(token)
        if denied is not None:
            return denied

        self._toggle_logging(enabled)
        return Result.success(enabled)

    def _toggle_logging(self, enabled: bool):
        if enabled:
            self.log_sink.enable()
            self.log_sink.info(_LOG_PREFIX + "logger was started")
        else:
            self.log_sink.info(_LOG_PREFIX + "logger was stopped")
            self.log_sink.disable()

    def set_log_file_path(self, token: str, path: Union[str, Path]) -> Result[None]:
        denied = self._authorize(token)
        if denied is not None:
            return denied

        try:
            self.log_sink.set_file_path(path)
        except LogSinkError as e:
            return Result.error(ErrorCode.FILE_IO_ERROR, str(e))
        return Result.success()

    # ==================== Messaging ====================

    def send_message(self, token: str, test_mode: bool, phone: str, text: str) -> Result[ProviderSendingResult]:
        """
        Send a free-text SMS.

        In test mode nothing is sent and a synthetic accepted result is returned.
        """
        denied = self._authorize(token)
        if denied is not None:
            return denied

        if test_mode:
            self.log_sink.info(_LOG_PREFIX + f"test mode - message not sent to: {phone}")
            return Result.success(ProviderSendingResult(status="accepted", description="test mode"))

        try:
            with self._messaging_lock:
                response = self.messaging.send_message(phone, text)
        except Exception as e:
            self.log_sink.error(_LOG_PREFIX + f"message sending exception: {e}")
            return Result.error(ErrorCode.UNKNOWN_ERROR, f"Message sending failed: {e}")

        self.log_sink.info(
            _LOG_PREFIX + f"response from provider: {response.status};{response.message_id}"
        )
        return Result.success(response)

    # ==================== Signing ====================

    def sign_document(
        self,
        token: str,
        test_mode: bool,
        require_all_fields: bool,
        identity: Identity,
        confirmation_code: str,
    ) -> Result[SigningOutcome]:
        """
        Sign the configured HTML template for identity.

        Args:
            token: Authorization token
            test_mode: Skip SMS delivery
            require_all_fields: Require passport fields and email as well
            identity: Signer identity
            confirmation_code: Code delivered to the signer's phone

        Returns:
            Result carrying a SigningOutcome
        """
        try:
            return self._sign(token, test_mode, require_all_fields, identity, confirmation_code)
        except Exception as e:
            self.log_sink.error(_LOG_PREFIX + f"unexpected error in sign_document: {e}")
            logger.exception("sign_document_failed")
            return Result.error(ErrorCode.UNKNOWN_ERROR, f"Unexpected error in sign_document: {e}")

    def _sign(self, token, test_mode, require_all_fields, identity, confirmation_code):
        denied = self._authorize(token)
        if denied is not None:
            self.log_sink.error(_LOG_PREFIX + "authentication failed")
            return denied

        if self.accept_control_codes and confirmation_code in CONTROL_CODES:
            self._toggle_logging(confirmation_code == CONTROL_CODE_LOG_ON)
            return Result.error(
                ErrorCode.UNKNOWN_ERROR,
                f"Control command {confirmation_code} applied, no document signed",
            )

        valid = identity.has_all_fields() if require_all_fields else identity.has_required_fields()
        if not valid:
            self.log_sink.error(
                _LOG_PREFIX + f"user validation failed for: {identity.phone_number}"
            )
            return Result.error(ErrorCode.INVALID_USER_DATA, "Invalid user data")

        artifacts: List[Path] = []
        try:
            self.log_sink.info(_LOG_PREFIX + "preparing document for signing")
            prepared = self._prepare(identity, artifacts)
            if prepared.is_error:
                self.log_sink.error(_LOG_PREFIX + "document preparation failed")
                return prepared

            delivered = self._deliver(test_mode, identity.phone_number, confirmation_code)
            if delivered.is_error:
                self.log_sink.error(_LOG_PREFIX + "message sending failed")
                return delivered

            self.log_sink.info(_LOG_PREFIX + "creating PDF stamp")
            signed = self._stamp(identity, prepared.value, confirmation_code, artifacts)
            if signed.is_error:
                self.log_sink.error(_LOG_PREFIX + "PDF stamp creation failed")
                return signed

            self.log_sink.success(
                _LOG_PREFIX + f"document signed successfully for: {identity.phone_number}"
            )
            return signed
        finally:
            cleanup_files(artifacts)

    def _prepare(self, identity: Identity, artifacts: List[Path]) -> Result[PreparedDocument]:
        if not self.render_worker.is_running():
            return Result.error(ErrorCode.SERVICE_SHUTDOWN, "Render worker is not running")

        config = self.get_config()
        if not ensure_directory(config.temp_dir):
            return Result.error(
                ErrorCode.FILE_IO_ERROR,
                f"Failed to create temp directory: {config.temp_dir}",
            )

        html_path = unique_path(config.temp_dir, TEMP_HTML_PREFIX, ".html")
        artifacts.append(html_path)
        try:
            self.template_processor.render_to_file(
                config.html_template_path,
                identity.to_dict(),
                html_path,
            )
        except TemplateError as e:
            self.log_sink.error(_LOG_PREFIX + f"HTML template processing failed: {e}")
            return Result.error(
                ErrorCode.HTML_REPLACE_ERROR,
                "Failed to replace user identity in HTML template",
            )

        pdf_path = unique_path(config.temp_dir, TEMP_PDF_PREFIX, ".pdf")
        artifacts.append(pdf_path)
        if not self.render_worker.convert_sync(html_path, pdf_path):
            if not self.render_worker.is_running():
                return Result.error(ErrorCode.SERVICE_SHUTDOWN, "Render worker is not running")
            self.log_sink.error(_LOG_PREFIX + "HTML to PDF conversion failed")
            return Result.error(ErrorCode.PDF_GENERATION_ERROR, "Failed to convert HTML to PDF")

        self.log_sink.info(_LOG_PREFIX + "document prepared successfully")
        return Result.success(PreparedDocument(temp_html_path=html_path, temp_pdf_path=pdf_path))

    def _deliver(self, test_mode: bool, phone: str, code: str) -> Result[None]:
        if test_mode:
            self.log_sink.info(_LOG_PREFIX + f"test mode - SMS not sent to: {phone}")
            return Result.success()

        self.log_sink.info(_LOG_PREFIX + f"sending SMS to: {phone}")
        status = ""
        try:
            with self._messaging_lock:
                response = self.messaging.send_confirmation(phone, code)
                if response.accepted:
                    status = self.messaging.check_status(response.message_id)
        except MessagingError as e:
            self.log_sink.error(_LOG_PREFIX + f"SMS sending exception: {e}")
            return Result.error(ErrorCode.SMS_SEND_ERROR, f"Message sending failed: {e}")

        self.log_sink.info(
            _LOG_PREFIX + f"response from provider: {response.status};{response.message_id}"
        )
        if status:
            self.log_sink.info(_LOG_PREFIX + f"SMS status from provider: {status}")
        if not response.accepted:
            self.log_sink.error(_LOG_PREFIX + f"SMS sending failed to: {phone}")
            return Result.error(
                ErrorCode.SMS_SEND_ERROR,
                f"Message sending failed: {response.status} {response.description}".rstrip(),
            )
        return Result.success()

    def _stamp(
        self,
        identity: Identity,
        prepared: PreparedDocument,
        code: str,
        artifacts: List[Path],
    ) -> Result[SigningOutcome]:
        context = ConfirmationContext(
            phone_number=identity.phone_number,
            confirmation_code=code,
            signing_time=now_with_offset(),
        )

        try:
            digest = self.hash_binder.compute_composite_hash(
                prepared.temp_pdf_path,
                identity.full_name,
                context.phone_number,
                context.confirmation_code,
                context.signing_time,
            )
        except HashBindingError as e:
            self.log_sink.error(_LOG_PREFIX + f"document hashing failed: {e}")
            return Result.error(ErrorCode.UNKNOWN_ERROR, f"Document signing failed: {e}")
        document_hash = self.hash_binder.to_hex(digest)

        payload = StampPayload(
            identity=identity,
            confirmation_code=context.confirmation_code,
            document_hash=document_hash,
            signing_time=context.signing_time,
        )

        config = self.get_config()
        staging_path = unique_path(config.temp_dir, SIGNED_PDF_PREFIX, ".pdf")
        artifacts.append(staging_path)
        if not self.stamper.apply_stamp(prepared.temp_pdf_path, staging_path, payload):
            return Result.error(ErrorCode.STAMP_APPLICATION_ERROR, "Stamp application failed")

        if not ensure_directory(config.output_dir):
            return Result.error(
                ErrorCode.FILE_IO_ERROR,
                f"Failed to create output directory: {config.output_dir}",
            )
        signed_path = Path(config.output_dir) / staging_path.name
        try:
            shutil.move(str(staging_path), str(signed_path))
        except OSError as e:
            cleanup_files([signed_path])
            return Result.error(
                ErrorCode.STAMP_APPLICATION_ERROR,
                f"Cannot move signed document to output directory: {e}",
            )

        return Result.success(SigningOutcome(
            first_name=identity.first_name,
            middle_name=identity.middle_name,
            last_name=identity.last_name,
            phone_number=context.phone_number,
            confirmation_code=context.confirmation_code,
            signing_time=context.signing_time,
            document_hash=document_hash,
            signed_pdf_path=str(signed_path),
        ))

    # ==================== Lifecycle ====================

    def close(self):
        """Shut down owned collaborators and flush the service log."""
        if self.owns_render_worker:
            self.render_worker.shutdown()
        self.messaging.close()
        self.log_sink.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
