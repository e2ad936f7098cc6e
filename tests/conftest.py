"""
Shared fixtures for otpsign tests.
"""

import pytest

from otpsign.audit import LogSink
from otpsign.models import Identity
from otpsign.pipeline import SigningPipeline
from otpsign.render import RenderWorker
from otpsign.settings import ServiceConfig
from otpsign.stamping import PdfStamper

from fakes import FakeMessaging, FakeRenderer

AUTH_TOKEN = "test-token"

HTML_TEMPLATE = """<html><body>
<h1>Agreement</h1>
<p>Signer: first_name middle_name last_name</p>
<p>Passport: passport_series passport_number</p>
<p>Phone: phone_number</p>
</body></html>
"""


@pytest.fixture
def identity():
    return Identity(
        first_name="Ivan",
        middle_name="Ivanovich",
        last_name="Ivanov",
        phone_number="+79161234567",
    )


@pytest.fixture
def service_dirs(tmp_path):
    template = tmp_path / "agreement.html"
    template.write_text(HTML_TEMPLATE, encoding='utf-8')
    message_template = tmp_path / "sms.txt"
    message_template.write_text("Your signing code: {code}", encoding='utf-8')
    credentials = tmp_path / "iqsms.env"
    credentials.write_text("IQSMS_LOGIN=user\nIQSMS_PASSWORD=secret\n", encoding='utf-8')

    dirs = {
        'root': tmp_path,
        'template': template,
        'message_template': message_template,
        'credentials': credentials,
        'log': tmp_path / "service.log",
        'temp': tmp_path / "tmp",
        'output': tmp_path / "signed",
    }
    dirs['temp'].mkdir()
    dirs['output'].mkdir()
    return dirs


@pytest.fixture
def service_config(service_dirs):
    return ServiceConfig(
        html_template_path=str(service_dirs['template']),
        message_template_path=str(service_dirs['message_template']),
        credentials_path=str(service_dirs['credentials']),
        log_file_path=str(service_dirs['log']),
        temp_dir=str(service_dirs['temp']),
        output_dir=str(service_dirs['output']),
        auth_token=AUTH_TOKEN,
    )


@pytest.fixture
def make_pipeline(service_config):
    """Build pipelines with fake collaborators; everything is closed at teardown."""
    created = []

    def factory(renderer=None, messaging=None, stamper=None, initialize=True, **kwargs):
        worker = RenderWorker(renderer or FakeRenderer())
        if initialize:
            assert worker.initialize()
        pipeline = SigningPipeline(
            config=service_config,
            render_worker=worker,
            messaging=messaging or FakeMessaging(),
            stamper=stamper or PdfStamper(),
            log_sink=LogSink(service_config.log_file_path),
            owns_render_worker=True,
            **kwargs,
        )
        created.append(pipeline)
        return pipeline

    yield factory

    for pipeline in created:
        pipeline.close()
