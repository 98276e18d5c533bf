from models.generation import GeneratedCode
from prompts.site_prompts import (
    CREATE_IMAGE_NOTE,
    EDIT_IMAGE_NOTE,
    IMAGE_ONLY_REQUEST,
    build_generation_prompt,
)


def test_create_mode_prompt_contains_request_and_contract():
    prompt = build_generation_prompt("A landing page for a bakery")

    assert "building a single-page website from scratch" in prompt
    assert '"A landing page for a bakery"' in prompt
    for field in ("title", "html_code", "css_code", "js_code", "external_css_files", "external_js_files"):
        assert f'"{field}"' in prompt
    assert CREATE_IMAGE_NOTE not in prompt


def test_edit_mode_embeds_existing_code_verbatim():
    html = "<section>\n" + "<p>row</p>\n" * 500 + "</section>"
    existing = GeneratedCode(
        title="Bakery {Deluxe}",
        html=html,
        css="body { margin: 0; }",
        javascript="document.querySelector('p').textContent = '{}';",
    )

    prompt = build_generation_prompt("Make the header blue", existing_code=existing)

    assert "editing an existing website" in prompt
    assert "Title: Bakery {Deluxe}" in prompt
    assert html in prompt
    assert existing.css in prompt
    assert existing.javascript in prompt


def test_attachment_note_and_personalization_context():
    existing = GeneratedCode(title="t", html="<p></p>")
    prompt = build_generation_prompt(
        "Match this",
        existing_code=existing,
        has_attachment=True,
        personalization_context="User prefers dark themes.\n",
    )

    assert prompt.startswith("User prefers dark themes.\n")
    assert EDIT_IMAGE_NOTE in prompt


def test_image_only_request_gets_default_text():
    prompt = build_generation_prompt("   ", has_attachment=True)

    assert IMAGE_ONLY_REQUEST in prompt
    assert CREATE_IMAGE_NOTE in prompt
