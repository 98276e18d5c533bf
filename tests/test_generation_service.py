import base64
import json

import httpx
import pytest
from google.genai import types

from conftest import FakeGenaiClient, site_reply
from config.settings import Settings
from models.generation import Attachment, GeneratedCode, RESPONSE_SCHEMA
from services.errors import (
    ConfigurationError,
    MalformedResponseError,
    SchemaViolationError,
    TransportError,
)
from services.generation_service import (
    GenerationClient,
    clean_json_response,
    has_usable_input,
    parse_generated_code,
)

PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake image").decode()


def test_parse_maps_backend_fields_to_internal_shape():
    code = parse_generated_code(site_reply())

    assert code.title == "Coffee Shop"
    assert code.html == "<main><h1>Coffee</h1></main>"
    assert code.css == "h1 { color: brown; }"
    assert code.javascript == "console.log('hi');"
    assert code.external_css == ["https://fonts.googleapis.com/css2?family=Inter"]
    assert code.external_js == []


def test_parse_defaults_missing_url_lists_to_empty():
    code = parse_generated_code(site_reply(external_css_files=..., external_js_files=None))

    assert code.external_css == []
    assert code.external_js == []


def test_parse_allows_empty_strings():
    code = parse_generated_code(site_reply(js_code="", css_code=""))

    assert code.javascript == ""
    assert code.css == ""


def test_parse_strips_markdown_fences():
    fenced = "```json\n" + site_reply() + "\n```"

    assert parse_generated_code(fenced).title == "Coffee Shop"
    assert clean_json_response("  ```{\"a\": 1}```  ") == '{"a": 1}'


def test_not_json_is_malformed():
    with pytest.raises(MalformedResponseError):
        parse_generated_code("not json")


def test_json_array_is_malformed():
    with pytest.raises(MalformedResponseError):
        parse_generated_code(json.dumps([1, 2, 3]))


def test_missing_plan_is_schema_violation():
    with pytest.raises(SchemaViolationError) as excinfo:
        parse_generated_code(site_reply(plan=...))

    assert "plan" in excinfo.value.message


def test_wrong_type_is_schema_violation():
    with pytest.raises(SchemaViolationError):
        parse_generated_code(site_reply(html_code=42))


@pytest.mark.asyncio
async def test_generate_create_mode_sends_schema_and_prompt(settings):
    fake = FakeGenaiClient()
    client = GenerationClient(settings, client=fake)

    code = await client.generate("A coffee shop site")

    assert isinstance(code, GeneratedCode)
    call = fake.calls[0]
    assert call["model"] == settings.gemini_model
    assert call["config"].response_mime_type == "application/json"
    assert call["config"].response_schema == RESPONSE_SCHEMA
    assert len(call["contents"]) == 1
    assert '"A coffee shop site"' in call["contents"][0]


@pytest.mark.asyncio
async def test_generate_edit_mode_embeds_existing_code(settings):
    fake = FakeGenaiClient()
    client = GenerationClient(settings, client=fake)
    existing = GeneratedCode(title="Old", html="<div id='keep'>x</div>", css="div{}", javascript="let a = 1;")

    await client.generate("Change the colors", existing_code=existing)

    text = fake.calls[0]["contents"][-1]
    for fragment in ("Title: Old", existing.html, existing.css, existing.javascript):
        assert fragment in text


@pytest.mark.asyncio
async def test_image_attachment_sent_as_inline_part(settings):
    fake = FakeGenaiClient()
    client = GenerationClient(settings, client=fake)
    attachment = Attachment(name="mock.png", dataUrl=PNG_DATA_URL, type="image/png")

    await client.generate("", attachment=attachment)

    part = fake.calls[0]["contents"][0]
    assert isinstance(part, types.Part)
    assert part.inline_data.mime_type == "image/png"
    assert part.inline_data.data == b"\x89PNG fake image"


@pytest.mark.asyncio
async def test_non_image_attachment_is_not_sent(settings):
    fake = FakeGenaiClient()
    client = GenerationClient(settings, client=fake)
    attachment = Attachment(
        name="notes.txt",
        dataUrl="data:text/plain;base64," + base64.b64encode(b"hello").decode(),
        type="text/plain",
    )

    await client.generate("Use my notes", attachment=attachment)

    assert len(fake.calls[0]["contents"]) == 1
    assert "provided an image" not in fake.calls[0]["contents"][0]


def test_request_needs_text_or_image():
    text_file = Attachment(
        name="notes.txt",
        dataUrl="data:text/plain;base64," + base64.b64encode(b"hello").decode(),
        type="text/plain",
    )
    image = Attachment(name="mock.png", dataUrl=PNG_DATA_URL, type="image/png")

    assert has_usable_input("A bakery", None)
    assert has_usable_input("  ", image)
    assert not has_usable_input("  ", None)
    assert not has_usable_input("", text_file)

def test_invalid_attachment_data_rejected():
    with pytest.raises(ValueError):
        Attachment(name="bad.png", dataUrl="data:image/png;base64,@@@", type="image/png")


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_network():
    client = GenerationClient(Settings(gemini_api_key=None))

    assert client.is_configured is False
    with pytest.raises(ConfigurationError):
        await client.generate("anything")


@pytest.mark.asyncio
async def test_network_error_becomes_transport_error(settings):
    fake = FakeGenaiClient()
    fake.queue(httpx.ConnectError("connection refused"))

    with pytest.raises(TransportError):
        await GenerationClient(settings, client=fake).generate("site")


@pytest.mark.asyncio
async def test_timeout_becomes_transport_error():
    fake = FakeGenaiClient()
    fake.delay = 0.5
    client = GenerationClient(Settings(gemini_api_key="k", generation_timeout=0.05), client=fake)

    with pytest.raises(TransportError) as excinfo:
        await client.generate("slow site")

    assert "too long" in excinfo.value.message


@pytest.mark.asyncio
async def test_empty_reply_is_transport_error(settings):
    fake = FakeGenaiClient()
    fake.queue("")

    with pytest.raises(TransportError):
        await GenerationClient(settings, client=fake).generate("site")


@pytest.mark.asyncio
async def test_malformed_reply_propagates(settings):
    fake = FakeGenaiClient()
    fake.queue("not json")

    with pytest.raises(MalformedResponseError):
        await GenerationClient(settings, client=fake).generate("site")
