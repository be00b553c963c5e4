import pytest

from scripts.start import gunicorn_argv


def test_gunicorn_defaults():
    argv = gunicorn_argv({})
    assert argv[:2] == ["gunicorn", "app.wsgi:app"]
    assert argv[argv.index("--bind") + 1] == "0.0.0.0:8080"
    assert argv[argv.index("--workers") + 1] == "2"
    assert argv[argv.index("--timeout") + 1] == "60"


def test_gunicorn_reads_environment():
    argv = gunicorn_argv({"PORT": " 5000 ", "WEB_CONCURRENCY": "4", "WEB_TIMEOUT": "120"})
    assert "0.0.0.0:5000" in argv
    assert argv[argv.index("--workers") + 1] == "4"
    assert argv[argv.index("--timeout") + 1] == "120"


@pytest.mark.parametrize("env", [{"PORT": "http"}, {"PORT": "70000"}, {"WEB_CONCURRENCY": "0"}])
def test_invalid_settings_exit(env):
    with pytest.raises(SystemExit):
        gunicorn_argv(env)
