import json
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from jiralink.config import Settings, get_settings
from jiralink.main import app
from jiralink.models import IssueOutcome, OutcomeStatus, ReconcileResult
from jiralink.security import sign_payload


class ApiTestCase(unittest.TestCase):
    settings_overrides = {}

    def setUp(self):
        values = {
            "jira_base_url": "https://jira.example.com",
            "jira_email": "bot@example.com",
            "jira_api_token": "secret",
        }
        values.update(self.settings_overrides)
        self.cfg = Settings(**values)
        app.dependency_overrides[get_settings] = lambda: self.cfg
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()


class HealthTests(ApiTestCase):
    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy", "service": "JiraLink"})


class GitHubWebhookTests(ApiTestCase):
    settings_overrides = {"github_webhook_secret": "s3cret"}

    def _post(self, event, payload, secret="s3cret"):
        body = json.dumps(payload).encode("utf-8")
        headers = {"X-GitHub-Event": event, "Content-Type": "application/json"}
        if secret:
            headers["X-Hub-Signature-256"] = sign_payload(secret, body)
        return self.client.post("/api/webhooks/github", content=body, headers=headers)

    def test_ping(self):
        response = self._post("ping", {"zen": "Keep it simple"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "pong"})

    def test_missing_or_bad_signature_is_rejected(self):
        self.assertEqual(self._post("ping", {}, secret=None).status_code, 401)
        self.assertEqual(self._post("ping", {}, secret="wrong").status_code, 401)

    def test_event_is_handed_to_pipeline(self):
        summary = {"event": "pull_request", "keys": ["PROJ-1"], "found": True}
        with patch("jiralink.api.webhooks.handle_event", return_value=summary) as handle:
            response = self._post("pull_request", {"action": "opened"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), summary)
        event, payload, cfg = handle.call_args.args
        self.assertEqual(event, "pull_request")
        self.assertEqual(payload, {"action": "opened"})
        self.assertIs(cfg, self.cfg)

    def test_pipeline_errors_map_to_status_codes(self):
        from jiralink.services.pipeline import PipelineError
        from jiralink.services.reconcile import ReconcileError

        with patch("jiralink.api.webhooks.handle_event", side_effect=PipelineError("no keys")):
            self.assertEqual(self._post("pull_request", {}).status_code, 422)
        with patch(
            "jiralink.api.webhooks.handle_event",
            side_effect=ReconcileError("PROJ-1", "Failed to post to PROJ-1"),
        ):
            self.assertEqual(self._post("pull_request", {}).status_code, 502)

    def test_non_object_payload_is_rejected(self):
        self.assertEqual(self._post("pull_request", [1, 2]).status_code, 400)


class UnsignedWebhookTests(ApiTestCase):
    def test_signature_not_required_without_secret(self):
        with patch("jiralink.api.webhooks.handle_event", return_value={"found": False}):
            response = self.client.post(
                "/api/webhooks/github",
                content=b'{"ref": "refs/heads/main"}',
                headers={"X-GitHub-Event": "push"},
            )

        self.assertEqual(response.status_code, 200)

    def test_invalid_json(self):
        response = self.client.post(
            "/api/webhooks/github", content=b"{not json", headers={"X-GitHub-Event": "push"}
        )
        self.assertEqual(response.status_code, 400)


class ReconcileEndpointTests(ApiTestCase):
    def _request(self, **overrides):
        payload = {
            "issue_keys": ["PROJ-1"],
            "change_request": {
                "number": 42,
                "title": "PROJ-1 Add feature",
                "body": "Body",
                "url": "https://github.com/org/repo/pull/42",
            },
            "mode": "new",
        }
        payload.update(overrides)
        return payload

    def test_runs_reconcile_and_returns_outcomes(self):
        result = ReconcileResult(
            issue_keys=["PROJ-1"],
            outcomes=[IssueOutcome(issue_key="PROJ-1", status=OutcomeStatus.SUCCEEDED)],
        )
        with patch("jiralink.api.reconcile.reconcile_service.reconcile", return_value=result) as run:
            response = self.client.post("/api/reconcile/", json=self._request())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["outcomes"][0]["status"], "succeeded")
        args = run.call_args.args
        self.assertEqual(args[0], ["PROJ-1"])
        self.assertEqual(args[1].title, "PROJ-1 Add feature")
        self.assertEqual(args[3].value, "new")
        self.assertEqual(args[4], "opened")

    def test_rejects_empty_key_list(self):
        response = self.client.post("/api/reconcile/", json=self._request(issue_keys=[]))
        self.assertEqual(response.status_code, 422)

    def test_rejects_blank_key(self):
        response = self.client.post("/api/reconcile/", json=self._request(issue_keys=[" "]))
        self.assertEqual(response.status_code, 400)

    def test_fail_fast_error_is_bad_gateway(self):
        from jiralink.services.reconcile import ReconcileError

        with patch(
            "jiralink.api.reconcile.reconcile_service.reconcile",
            side_effect=ReconcileError("PROJ-1", "Failed to post to PROJ-1: 500"),
        ):
            response = self.client.post(
                "/api/reconcile/", json=self._request(fail_fast=True)
            )

        self.assertEqual(response.status_code, 502)
        self.assertIn("PROJ-1", response.json()["detail"])


class ReconcileEndpointWithoutJiraTests(ApiTestCase):
    settings_overrides = {"jira_api_token": None}

    def test_requires_jira_credentials(self):
        response = self.client.post(
            "/api/reconcile/",
            json={
                "issue_keys": ["PROJ-1"],
                "change_request": {"title": "t", "url": "https://github.com/o/r/pull/1"},
            },
        )
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
