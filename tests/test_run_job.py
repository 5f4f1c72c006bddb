import pytest

from ops import run_job


def test_run_job_posts_to_job_endpoint(monkeypatch, capsys):
    calls = []

    def fake_post(url, cron_secret):
        calls.append((url, cron_secret))
        return 200, {"success": True, "processed": 2}

    monkeypatch.setattr(run_job, "http_post", fake_post)
    monkeypatch.setattr("sys.argv", ["run_job", "expire-verifications", "--base-url", "http://api:8000/", "--cron-secret", "s3cret"])

    assert run_job.main() == 0
    assert calls == [("http://api:8000/v1/jobs/expire-verifications", "s3cret")]
    assert '"processed": 2' in capsys.readouterr().out


def test_run_job_fails_on_error_response(monkeypatch):
    monkeypatch.setattr(run_job, "http_post", lambda url, secret: (401, {"error": {"status": 401}}))
    monkeypatch.setattr("sys.argv", ["run_job", "send-notifications"])
    assert run_job.main() == 1


def test_run_job_rejects_unknown_job(monkeypatch):
    monkeypatch.setattr("sys.argv", ["run_job", "reindex"])
    with pytest.raises(SystemExit):
        run_job.main()
