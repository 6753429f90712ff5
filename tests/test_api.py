import base64
import json
import pathlib
import sys
import tempfile
import unittest
from unittest import mock

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "scripts"))

from mcp.server.fastmcp.exceptions import ToolError

from forge_image_mcp import api
from forge_image_mcp.core.contracts import Candidate, ImagePart, ProviderResponse, TextPart
from forge_image_mcp.core.credentials import ENV_VAR, CredentialResolver
from forge_image_mcp.core.orchestrator import ImageContext
from forge_image_mcp.server import build_server


class FakeAdapter:
    name = "fake"

    def __init__(self):
        self.responses = []
        self.calls = []

    async def generate_content(self, *, model, parts):
        self.calls.append({"model": model, "parts": list(parts)})
        return self.responses.pop(0)


class ApiTestCase(unittest.IsolatedAsyncioTestCase):
    environ = {ENV_VAR: "test-key"}

    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = pathlib.Path(self._tmp.name)
        self.config_path = self.tmpdir / "config.json"
        self.adapter = FakeAdapter()
        self.ctx = ImageContext(
            credentials=CredentialResolver(self.config_path, environ=dict(self.environ)),
            adapter_factory=lambda token: self.adapter,
            images_dir=self.tmpdir / "out",
        )

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()


class TestImageTools(ApiTestCase):
    async def test_generate_returns_text_and_image_content(self) -> None:
        self.adapter.responses = [
            ProviderResponse(candidates=(Candidate(parts=(TextPart("Here you go"), ImagePart(b"img"))),))
        ]
        content = await api.generate_image(self.ctx, "a lighthouse")

        self.assertEqual([item.type for item in content], ["text", "image"])
        text = content[0].text
        self.assertIn('Prompt: "a lighthouse"', text)
        self.assertIn("Description: Here you go", text)
        self.assertIn(str(self.ctx.session.last_artifact_path), text)
        self.assertIn("continue_editing", text)
        self.assertEqual(base64.b64decode(content[1].data), b"img")
        self.assertEqual(content[1].mimeType, "image/png")

    async def test_text_only_generation_notes_missing_image(self) -> None:
        self.adapter.responses = [ProviderResponse(candidates=(Candidate(parts=(TextPart("Only words"),)),))]
        content = await api.generate_image(self.ctx, "prompt")
        self.assertEqual(len(content), 1)
        self.assertIn("No image was generated", content[0].text)
        self.assertNotIn("Image saved to", content[0].text)

    async def test_edit_lists_warnings(self) -> None:
        primary = self.tmpdir / "main.png"
        primary.write_bytes(b"main")
        self.adapter.responses = [ProviderResponse(candidates=(Candidate(parts=(ImagePart(b"out"),)),))]

        content = await api.edit_image(self.ctx, str(primary), "brighter", [str(self.tmpdir / "nope.png")])

        text = content[0].text
        self.assertIn("Image edited", text)
        self.assertIn(f"Original: {primary.resolve()}", text)
        self.assertIn("Warnings:", text)
        self.assertIn('Skipped reference image "', text)

    async def test_continue_editing_without_prior_image(self) -> None:
        with self.assertRaises(ToolError) as caught:
            await api.continue_editing(self.ctx, "more")
        self.assertTrue(str(caught.exception).startswith("[NO_PRIOR_IMAGE]"))

    async def test_invalid_model_maps_to_invalid_input(self) -> None:
        with self.assertRaises(ToolError) as caught:
            await api.generate_image(self.ctx, "prompt", "gpt-5")
        self.assertIn("[INVALID_INPUT]", str(caught.exception))
        self.assertIn("gpt-5", str(caught.exception))
        self.assertEqual(self.adapter.calls, [])

    async def test_unclassified_failure_maps_to_internal_error(self) -> None:
        with mock.patch.object(self.ctx.credentials, "status", side_effect=RuntimeError("disk exploded")):
            with self.assertRaises(ToolError) as caught:
                await api.get_configuration_status(self.ctx)
        message = str(caught.exception)
        self.assertTrue(message.startswith("[INTERNAL_ERROR]"))
        self.assertIn("disk exploded", message)


class TestNotConfiguredTools(ApiTestCase):
    environ = {}

    async def test_generate_reports_not_configured(self) -> None:
        with self.assertRaises(ToolError) as caught:
            await api.generate_image(self.ctx, "prompt")
        self.assertTrue(str(caught.exception).startswith("[NOT_CONFIGURED]"))

    async def test_configure_then_status(self) -> None:
        status = await api.get_configuration_status(self.ctx)
        self.assertIn("not configured", status)

        message = await api.configure_credential(self.ctx, "new-token")
        self.assertIn("configured successfully", message)
        self.assertEqual(json.loads(self.config_path.read_text(encoding="utf-8")), {"token": "new-token"})

        status = await api.get_configuration_status(self.ctx)
        self.assertIn("Local configuration file", status)
        self.assertNotIn("new-token", status)

    async def test_configure_rejects_blank_token(self) -> None:
        with self.assertRaises(ToolError) as caught:
            await api.configure_credential(self.ctx, "")
        self.assertTrue(str(caught.exception).startswith("[INVALID_INPUT]"))
        self.assertFalse(self.config_path.exists())


class TestInformationalTools(ApiTestCase):
    async def test_environment_status(self) -> None:
        status = await api.get_configuration_status(self.ctx)
        self.assertIn(f"Environment variable ({ENV_VAR})", status)
        self.assertNotIn("test-key", status)

    async def test_last_image_info_states(self) -> None:
        info = await api.get_last_image_info(self.ctx)
        self.assertIn("No previous image found", info)

        path = self.tmpdir / "last.png"
        path.write_bytes(b"x" * 2048)
        self.ctx.session.record_artifact(path)
        info = await api.get_last_image_info(self.ctx)
        self.assertIn(f"Path: {path}", info)
        self.assertIn("File Size: 2 KB", info)
        self.assertIn("Last Modified:", info)

        path.unlink()
        info = await api.get_last_image_info(self.ctx)
        self.assertIn("Status: File not found", info)


class TestServerRegistration(unittest.IsolatedAsyncioTestCase):
    async def test_tools_registered_with_schemas(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ctx = api.create_context(
                images_dir=tmpdir,
                config_path=pathlib.Path(tmpdir) / "config.json",
                adapter_factory=lambda token: FakeAdapter(),
            )
            server = build_server(ctx)
            tools = {tool.name: tool for tool in await server.list_tools()}

        self.assertEqual(
            set(tools),
            {
                "configure_credential",
                "generate_image",
                "edit_image",
                "continue_editing",
                "get_last_image_info",
                "get_configuration_status",
            },
        )
        edit_schema = tools["edit_image"].inputSchema
        self.assertEqual(set(edit_schema["required"]), {"imagePath", "prompt"})
        self.assertIn("referenceImages", edit_schema["properties"])
        self.assertIn("modelId", edit_schema["properties"])
        self.assertEqual(tools["configure_credential"].inputSchema["required"], ["token"])


if __name__ == "__main__":
    unittest.main()
