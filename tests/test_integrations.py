"""
Platform Client Tests
---------------------
Each client is exercised against httpx.MockTransport to check the request
it sends and how the response is reshaped.
"""

import asyncio
import hashlib
import hmac
import json
import time
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from platforms.errors import PlatformApiError
from platforms.integrations import (
    AsanaClient,
    ClerkClient,
    CloudflareClient,
    DigitalOceanClient,
    DockerClient,
    GitHubClient,
    HuggingFaceClient,
    NotionClient,
    RailwayClient,
    StripeClient,
    VercelClient,
)


def build(cls, recorder, env=None, **kwargs):
    return cls(
        config=cls.build_config(environ=env or {}),
        transport=httpx.MockTransport(recorder),
        production=False,
        **kwargs,
    )


def run(client, method, *args, **kwargs):
    async def scenario():
        async with client:
            return await getattr(client, method)(*args, **kwargs)

    return asyncio.run(scenario())


def query_of(request):
    return {k: v[0] for k, v in parse_qs(urlsplit(str(request.url)).query).items()}


class TestGitHub:
    ENV = {"GITHUB_ACCESS_TOKEN": "ghp_test"}

    def test_get_repo_camelizes(self, recorder):
        recorder.reply(httpx.Response(200, json={"full_name": "octo/hello", "stargazers_count": 3}))
        client = build(GitHubClient, recorder, self.ENV)

        repo = run(client, "get_repo", "octo", "hello")

        assert repo == {"fullName": "octo/hello", "stargazersCount": 3}
        assert str(recorder.last.url) == "https://api.github.com/repos/octo/hello"
        assert recorder.last.headers["Authorization"] == "Bearer ghp_test"
        assert recorder.last.headers["Accept"] == "application/vnd.github+json"

    def test_create_issue_body(self, recorder):
        recorder.reply(httpx.Response(201, json={"number": 7, "html_url": "https://github.com/o/r/issues/7"}))
        client = build(GitHubClient, recorder, self.ENV)

        issue = run(client, "create_issue", "o", "r", "Bug", body="Steps", labels=["bug"])

        assert json.loads(recorder.last.content) == {"title": "Bug", "body": "Steps", "labels": ["bug"]}
        assert issue["htmlUrl"].endswith("/issues/7")

    def test_workflow_runs_for_one_workflow(self, recorder):
        recorder.reply(httpx.Response(200, json={"workflow_runs": [{"run_number": 4}]}))
        client = build(GitHubClient, recorder, self.ENV)

        runs = run(client, "list_workflow_runs", "o", "r", workflow_id="ci.yml")

        assert runs == [{"runNumber": 4}]
        assert urlsplit(str(recorder.last.url)).path == "/repos/o/r/actions/workflows/ci.yml/runs"
        assert query_of(recorder.last) == {"per_page": "30"}

    def test_trigger_workflow(self, recorder):
        recorder.reply(httpx.Response(204))
        client = build(GitHubClient, recorder, self.ENV)

        assert run(client, "trigger_workflow", "o", "r", "deploy.yml", inputs={"env": "prod"}) is None
        assert json.loads(recorder.last.content) == {"ref": "main", "inputs": {"env": "prod"}}

    def test_health_check(self, recorder):
        assert build(GitHubClient, recorder, self.ENV).health_check()["status"] == "ok"

        unconfigured = build(GitHubClient, recorder).health_check()
        assert unconfigured["status"] == "not_configured"
        assert unconfigured["missing"] == ["access_token"]


class TestDocker:

    def test_ping_local_daemon_in_development(self, recorder):
        recorder.reply(httpx.Response(200, text="OK"))
        client = build(DockerClient, recorder)

        assert run(client, "ping") is True
        assert str(recorder.last.url) == "http://localhost:2375/_ping"
        assert "Authorization" not in recorder.last.headers

    def test_ping_local_daemon_blocked_in_production(self, recorder):
        client = DockerClient(
            config=DockerClient.build_config(environ={}),
            transport=httpx.MockTransport(recorder),
            production=True,
        )

        assert run(client, "ping") is False
        assert recorder.requests == []

    def test_create_container(self, recorder):
        recorder.reply(httpx.Response(201, json={"Id": "c1", "Warnings": None}))
        client = build(DockerClient, recorder)

        result = run(
            client,
            "create_container",
            "nginx:latest",
            name="web",
            env={"PORT": "80"},
            host_config={"auto_remove": True, "port_bindings": {"80/tcp": [{"HostPort": "8080"}]}},
        )

        assert result == {"id": "c1", "warnings": []}
        assert query_of(recorder.last) == {"name": "web"}
        assert json.loads(recorder.last.content) == {
            "Image": "nginx:latest",
            "Env": ["PORT=80"],
            "HostConfig": {"AutoRemove": True, "PortBindings": {"80/tcp": [{"HostPort": "8080"}]}},
        }

    def test_list_containers_query(self, recorder):
        recorder.reply(httpx.Response(200, json=[{"Id": "c1"}]))
        client = build(DockerClient, recorder)

        run(client, "list_containers", all=True, filters={"status": ["running"]})

        assert recorder.last.url.path == "/containers/json"
        assert query_of(recorder.last) == {"all": "true", "filters": '{"status": ["running"]}'}

    def test_stop_container_timeout(self, recorder):
        recorder.reply(httpx.Response(204))
        client = build(DockerClient, recorder)

        run(client, "stop_container", "c1", timeout=10)

        assert recorder.last.method == "POST"
        assert query_of(recorder.last) == {"t": "10"}
        assert recorder.last.content == b""

    def test_prune_images_reshapes(self, recorder):
        recorder.reply(httpx.Response(200, json={
            "ImagesDeleted": [{"Untagged": "old:1"}, {"Deleted": "sha256:abc"}],
            "SpaceReclaimed": 2048,
        }))
        client = build(DockerClient, recorder)

        assert run(client, "prune_images") == {
            "imagesDeleted": [
                {"deleted": None, "untagged": "old:1"},
                {"deleted": "sha256:abc", "untagged": None},
            ],
            "spaceReclaimed": 2048,
        }

    def test_health_check_needs_no_credentials(self, recorder):
        client = build(DockerClient, recorder)

        check = client.health_check()

        assert check["configured"] is True
        assert check["status"] == "ok"
        assert check["host"] == "http://localhost:2375"


class TestCloudflare:
    ENV = {"CLOUDFLARE_API_KEY": "cf_key"}

    def test_list_zones_keeps_base_path(self, recorder):
        recorder.reply(httpx.Response(200, json={"success": True, "errors": [], "result": [{"id": "z1"}]}))
        client = build(CloudflareClient, recorder, self.ENV, account_id="acc")

        assert run(client, "list_zones") == [{"id": "z1"}]
        assert str(recorder.last.url) == "https://api.cloudflare.com/client/v4/zones"
        assert recorder.last.headers["Authorization"] == "Bearer cf_key"

    def test_api_error(self, recorder):
        recorder.reply(httpx.Response(200, json={"success": False, "errors": [{"message": "Zone not found"}]}))
        client = build(CloudflareClient, recorder, self.ENV, account_id="acc")

        with pytest.raises(PlatformApiError, match="Zone not found"):
            run(client, "get_zone", "missing")

    def test_list_tunnels_reshapes(self, recorder):
        recorder.reply(httpx.Response(200, json={
            "success": True,
            "result": [{"id": "t1", "name": "home", "status": "healthy", "created_at": "2025-01-01", "extra": 1}],
        }))
        client = build(CloudflareClient, recorder, self.ENV, account_id="acc")

        tunnels = run(client, "list_tunnels")

        assert tunnels == [{"id": "t1", "name": "home", "status": "healthy", "createdAt": "2025-01-01"}]
        assert urlsplit(str(recorder.last.url)).path == "/client/v4/accounts/acc/cfd_tunnel"

    def test_purge_everything(self, recorder):
        recorder.reply(httpx.Response(200, json={"success": True, "result": {"id": "p"}}))
        client = build(CloudflareClient, recorder, self.ENV, account_id="acc")

        run(client, "purge_cache", "z1")

        assert json.loads(recorder.last.content) == {"purge_everything": True}


class TestVercel:
    ENV = {"VERCEL_ACCESS_TOKEN": "vc_tok"}

    def test_team_scope(self, recorder):
        recorder.reply(httpx.Response(200, json={"projects": [{"name": "site"}]}))
        client = build(VercelClient, recorder, self.ENV, team_id="team_1")

        assert run(client, "list_projects") == [{"name": "site"}]
        assert query_of(recorder.last) == {"limit": "20", "teamId": "team_1"}

    def test_no_team_no_query(self, recorder):
        recorder.reply(httpx.Response(200, json={"deployments": []}))
        client = build(VercelClient, recorder, self.ENV)

        run(client, "list_deployments", project_id="prj")

        assert query_of(recorder.last) == {"projectId": "prj", "limit": "10"}
        assert urlsplit(str(recorder.last.url)).path == "/v6/deployments"

    def test_create_env_var(self, recorder):
        recorder.reply(httpx.Response(201, json={"key": "API_URL"}))
        client = build(VercelClient, recorder, self.ENV, team_id="team_1")

        run(client, "create_env_var", "prj", "API_URL", "https://example.com", target=["production"])

        assert recorder.last.method == "POST"
        assert query_of(recorder.last) == {"teamId": "team_1"}
        assert json.loads(recorder.last.content)["target"] == ["production"]


class TestDigitalOcean:
    ENV = {"DIGITALOCEAN_API_KEY": "do_key"}

    def test_power_off(self, recorder):
        recorder.reply(httpx.Response(201, json={"action": {"id": 1, "resource_type": "droplet"}}))
        client = build(DigitalOceanClient, recorder, self.ENV)

        action = run(client, "power_off", 42)

        assert action == {"id": 1, "resourceType": "droplet"}
        assert str(recorder.last.url) == "https://api.digitalocean.com/v2/droplets/42/actions"
        assert json.loads(recorder.last.content) == {"type": "power_off"}

    def test_list_ssh_keys(self, recorder):
        recorder.reply(httpx.Response(200, json={"ssh_keys": [{"id": 1, "public_key": "ssh-ed25519 AAA"}]}))
        client = build(DigitalOceanClient, recorder, self.ENV)

        assert run(client, "list_ssh_keys") == [{"id": 1, "publicKey": "ssh-ed25519 AAA"}]
        assert urlsplit(str(recorder.last.url)).path == "/v2/account/keys"


class TestRailway:
    ENV = {"RAILWAY_API_KEY": "rw_key"}

    def test_list_projects(self, recorder):
        recorder.reply(httpx.Response(200, json={
            "data": {"me": {"projects": {"edges": [{"node": {"id": "p1", "name": "api"}}]}}},
        }))
        client = build(RailwayClient, recorder, self.ENV)

        assert run(client, "list_projects") == [{"id": "p1", "name": "api"}]
        assert str(recorder.last.url) == "https://backboard.railway.app/graphql/v2"
        assert recorder.last.method == "POST"
        assert "projects" in json.loads(recorder.last.content)["query"]

    def test_graphql_errors_raise(self, recorder):
        recorder.reply(httpx.Response(200, json={"errors": [{"message": "Not Authorized"}]}))
        client = build(RailwayClient, recorder, self.ENV)

        with pytest.raises(PlatformApiError, match="Railway API Error: Not Authorized"):
            run(client, "deploy", "svc", "env")

    def test_deploy_variables(self, recorder):
        recorder.reply(httpx.Response(200, json={"data": {"serviceInstanceDeploy": True}}))
        client = build(RailwayClient, recorder, self.ENV)

        assert run(client, "deploy", "svc", "env") == {"ok": True, "serviceId": "svc"}
        assert json.loads(recorder.last.content)["variables"] == {"serviceId": "svc", "environmentId": "env"}


class TestAsana:
    ENV = {"ASANA_ACCESS_TOKEN": "as_tok"}

    def test_create_task_wraps_data(self, recorder):
        recorder.reply(httpx.Response(201, json={"data": {"gid": "1", "name": "Ship"}}))
        client = build(AsanaClient, recorder, self.ENV)

        task = run(client, "create_task", "proj", "Ship", notes="v1")

        assert task == {"gid": "1", "name": "Ship"}
        assert json.loads(recorder.last.content) == {"data": {"name": "Ship", "projects": ["proj"], "notes": "v1"}}

    def test_complete_task_uses_put(self, recorder):
        recorder.reply(httpx.Response(200, json={"data": {"gid": "1", "completed": True}}))
        client = build(AsanaClient, recorder, self.ENV)

        run(client, "complete_task", "1")

        assert recorder.last.method == "PUT"
        assert json.loads(recorder.last.content) == {"data": {"completed": True}}


class TestNotion:
    ENV = {"NOTION_ACCESS_TOKEN": "secret_tok"}

    def test_version_header_and_search(self, recorder):
        recorder.reply(httpx.Response(200, json={"results": [{"id": "p"}], "next_cursor": None, "has_more": False}))
        client = build(NotionClient, recorder, self.ENV)

        result = run(client, "search", "roadmap", filter_type="page")

        assert result == {"results": [{"id": "p"}], "nextCursor": None, "hasMore": False}
        assert recorder.last.headers["Notion-Version"] == "2022-06-28"
        assert json.loads(recorder.last.content) == {
            "query": "roadmap",
            "filter": {"property": "object", "value": "page"},
        }

    def test_archive_page(self, recorder):
        recorder.reply(httpx.Response(200, json={"id": "p", "archived": True}))
        client = build(NotionClient, recorder, self.ENV)

        run(client, "archive_page", "p")

        assert recorder.last.method == "PATCH"
        assert json.loads(recorder.last.content) == {"archived": True}


def _hex_sig(secret, timestamp, payload):
    return hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()


class TestClerk:
    ENV = {"CLERK_API_KEY": "sk_test", "CLERK_WEBHOOK_SECRET": "whsec_clerk"}

    def test_ban_user(self, recorder):
        recorder.reply(httpx.Response(200, json={"id": "user_1", "banned": True}))
        client = build(ClerkClient, recorder, self.ENV)

        assert run(client, "ban_user", "user_1")["banned"] is True
        assert str(recorder.last.url) == "https://api.clerk.com/v1/users/user_1/ban"
        assert recorder.last.headers["Authorization"] == "Bearer sk_test"

    def test_verify_webhook(self, recorder):
        client = build(ClerkClient, recorder, self.ENV)
        payload = b'{"type":"user.created"}'

        assert client.verify_webhook(payload, _hex_sig("whsec_clerk", "123", payload), "123") is True
        assert client.verify_webhook(payload, "bad", "123") is False

    def test_verify_webhook_non_utf8_payload(self, recorder):
        client = build(ClerkClient, recorder, self.ENV)
        payload = b"\xff\xfe"

        assert client.verify_webhook(payload, "abc", "1000") is False
        assert client.verify_webhook(payload, _hex_sig("whsec_clerk", "1000", payload), "1000") is True

    def test_verify_webhook_without_secret(self, recorder):
        client = build(ClerkClient, recorder, {"CLERK_API_KEY": "sk_test"})

        assert client.verify_webhook(b"{}", "sig", "1") is False


class TestStripe:
    ENV = {"STRIPE_API_KEY": "sk_test", "STRIPE_WEBHOOK_SECRET": "whsec_stripe"}

    def test_create_customer_is_form_encoded(self, recorder):
        recorder.reply(httpx.Response(200, json={"id": "cus_1"}))
        client = build(StripeClient, recorder, self.ENV)

        run(client, "create_customer", email="a@b.c", metadata={"plan": "pro"})

        assert recorder.last.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert parse_qs(recorder.last.content.decode()) == {"email": ["a@b.c"], "metadata[plan]": ["pro"]}

    def test_list_customers(self, recorder):
        recorder.reply(httpx.Response(200, json={"data": [{"id": "cus_1"}], "has_more": True}))
        client = build(StripeClient, recorder, self.ENV)

        assert run(client, "list_customers", limit=1) == {"data": [{"id": "cus_1"}], "hasMore": True}
        assert query_of(recorder.last) == {"limit": "1"}

    def test_cancel_subscription(self, recorder):
        recorder.reply(httpx.Response(200, json={"id": "sub_1", "status": "canceled"}))
        client = build(StripeClient, recorder, self.ENV)

        run(client, "cancel_subscription", "sub_1")

        assert recorder.last.method == "DELETE"

    def test_verify_webhook(self, recorder):
        client = build(StripeClient, recorder, self.ENV)
        payload = b'{"type": "invoice.paid"}'
        now = int(time.time())
        header = f"t={now},v1={_hex_sig('whsec_stripe', now, payload)}"

        assert client.verify_webhook(payload, header) == {"ok": True, "event": {"type": "invoice.paid"}}

    def test_verify_webhook_rejects(self, recorder):
        client = build(StripeClient, recorder, self.ENV)
        payload = b"{}"
        header = f"t=1000,v1={_hex_sig('whsec_stripe', 1000, payload)}"

        assert client.verify_webhook(payload, header, now=1000 + 301)["error"] == "Timestamp outside tolerance"
        assert client.verify_webhook(payload, "t=1000,v1=bad", now=1000)["error"] == "Invalid signature"
        assert client.verify_webhook(payload, "garbage", now=1000)["error"] == "Malformed signature header"

    def test_verify_webhook_non_utf8_payload(self, recorder):
        client = build(StripeClient, recorder, self.ENV)
        payload = b"\xff\xfe"
        header = f"t=1000,v1={_hex_sig('whsec_stripe', 1000, payload)}"

        assert client.verify_webhook(payload, "t=1000,v1=abc", now=1000) == {"ok": False, "error": "Invalid signature"}
        assert client.verify_webhook(payload, header, now=1000)["error"] == "Payload is not valid JSON"

    def test_verify_webhook_accepts_any_v1_entry(self, recorder):
        client = build(StripeClient, recorder, self.ENV)
        payload = b'{"type": "invoice.paid"}'
        valid = _hex_sig("whsec_stripe", 1000, payload)

        result = client.verify_webhook(payload, f"t=1000,v1={valid},v1=stale,v0=legacy", now=1000)

        assert result == {"ok": True, "event": {"type": "invoice.paid"}}
        assert client.verify_webhook(payload, "v1=abc", now=1000)["error"] == "Malformed signature header"


class TestHuggingFace:
    ENV = {"HUGGINGFACE_API_KEY": "hf_tok"}

    @staticmethod
    def _hub(model, files):
        def handler(request):
            if request.url.path.endswith("/tree/main"):
                return httpx.Response(200, json=[{"path": p, "type": "file"} for p in files])
            return httpx.Response(200, json=model)

        return handler

    def test_pickle_without_license_is_unsafe(self):
        handler = self._hub({"id": "acme/model", "tags": ["pytorch"]}, ["pytorch_model.bin", "config.json"])
        client = build(HuggingFaceClient, handler, self.ENV)

        report = run(client, "check_model_safety", "acme/model")

        assert report["isSafe"] is False
        assert report["hasPickle"] is True
        assert report["hasSafetensors"] is False
        assert report["license"] == "unknown"
        assert len(report["warnings"]) == 2
        assert report["cardWarnings"]

    def test_safetensors_model_is_safe(self):
        handler = self._hub(
            {"id": "acme/model", "tags": ["license:apache-2.0"]},
            ["README.md", "model.safetensors", "pytorch_model.bin"],
        )
        client = build(HuggingFaceClient, handler, self.ENV)

        report = run(client, "check_model_safety", "acme/model")

        assert report["isSafe"] is True
        assert report["license"] == "apache-2.0"
        assert report["warnings"] == []
        assert report["cardExists"] is True

    def test_gated_model_is_flagged(self):
        handler = self._hub({"id": "m", "tags": ["license:mit"], "gated": "manual"}, ["README.md"])
        client = build(HuggingFaceClient, handler, self.ENV)

        report = run(client, "check_model_safety", "m")

        assert report["isSafe"] is False
        assert "gated" in report["warnings"][0]

    def test_text_generation_uses_inference_host(self, recorder):
        recorder.reply(httpx.Response(200, json=[{"generated_text": "Hello world"}]))
        client = build(HuggingFaceClient, recorder, self.ENV)

        text = run(client, "text_generation", "gpt2", "Hello")

        assert text == "Hello world"
        assert str(recorder.last.url) == "https://api-inference.huggingface.co/models/gpt2"
        body = json.loads(recorder.last.content)
        assert body["inputs"] == "Hello"
        assert "top_k" not in body["parameters"]
        assert client.inference_config.rate_limit_per_minute == 30
        assert client.inference_config.timeout == 120.0
