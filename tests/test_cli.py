"""
Tests for the command-line entry point.
"""

import json

from otpsign import cli
from otpsign.pipeline import SigningPipeline
from otpsign.render import RenderWorker

from fakes import FakeMessaging, FakeRenderer


def _write_config(service_dirs, token="cli-token"):
    path = service_dirs['root'] / "service.ini"
    path.write_text(
        "\n".join([
            f"html_template_path={service_dirs['template']}",
            f"message_template_path={service_dirs['message_template']}",
            f"env_file_path={service_dirs['credentials']}",
            f"log_file_path={service_dirs['log']}",
            f"temp_dir={service_dirs['temp']}",
            f"output_pdf_dir={service_dirs['output']}",
            f"auth_token={token}",
        ]) + "\n",
        encoding='utf-8',
    )
    return path


def _write_user(service_dirs, data):
    path = service_dirs['root'] / "user.json"
    path.write_text(json.dumps(data), encoding='utf-8')
    return path


def _use_fake_collaborators(monkeypatch):
    original = SigningPipeline.from_config_file.__func__

    def from_config_file(cls, config_path, render_options=None, accept_control_codes=True):
        pipeline = original(cls, config_path, render_options, accept_control_codes)
        pipeline.messaging.close()
        pipeline.render_worker = RenderWorker(FakeRenderer())
        pipeline.messaging = FakeMessaging()
        return pipeline

    monkeypatch.setattr(SigningPipeline, "from_config_file", classmethod(from_config_file))


USER = {
    'first_name': "Ivan",
    'middle_name': "Ivanovich",
    'last_name': "Ivanov",
    'phone_number': "+79161234567",
}


class TestCli:

    def test_sign_in_test_mode(self, service_dirs, monkeypatch, capsys):
        _use_fake_collaborators(monkeypatch)
        config = _write_config(service_dirs)
        user = _write_user(service_dirs, USER)

        exit_code = cli.main([str(config), str(user), "--code", "1234"])

        output = capsys.readouterr().out
        assert exit_code == 0
        assert "Document signed" in output
        assert "test mode" in output
        assert len(list(service_dirs['output'].iterdir())) == 1

    def test_invalid_json(self, service_dirs, capsys):
        config = _write_config(service_dirs)
        user = service_dirs['root'] / "user.json"
        user.write_text("{broken", encoding='utf-8')

        assert cli.main([str(config), str(user)]) == 1
        assert "INVALID_JSON" in capsys.readouterr().out

    def test_wrong_token(self, service_dirs, monkeypatch, capsys):
        _use_fake_collaborators(monkeypatch)
        config = _write_config(service_dirs)
        user = _write_user(service_dirs, USER)

        assert cli.main([str(config), str(user), "--token", "nope", "--code", "1234"]) == 1
        assert "INVALID_AUTH_TOKEN" in capsys.readouterr().out

    def test_missing_required_field(self, service_dirs, monkeypatch, capsys):
        _use_fake_collaborators(monkeypatch)
        config = _write_config(service_dirs)
        user = _write_user(service_dirs, {'first_name': "Ivan"})

        assert cli.main([str(config), str(user)]) == 1
        assert "INVALID_USER_DATA" in capsys.readouterr().out

    def test_missing_config(self, service_dirs, capsys):
        user = _write_user(service_dirs, USER)

        assert cli.main([str(service_dirs['root'] / "missing.ini"), str(user)]) == 1
        assert "INIT_SERVICE_ERROR" in capsys.readouterr().out
