# Prompt templates for single-page website generation
# The model answers with one JSON object; the field list below mirrors RESPONSE_SCHEMA

JSON_OUTPUT_INSTRUCTIONS = """
**OUTPUT FORMAT:**
Return a single, valid JSON object and nothing else: no surrounding text, comments or markdown fences.
The object must contain exactly these fields:
- "title": A short, descriptive title for the web page.
- "plan": A step-by-step plan for the changes or creation, formatted as a bulleted list string (e.g., "* Item 1\\n* Item 2").
- "html_code": The complete HTML code for the body of the page.
- "css_code": The complete CSS code for the styling. Use modern design principles and ensure it is responsive.
- "js_code": The complete JavaScript code for interactivity. Can be empty if not needed.
- "external_css_files": An array of CDN URLs for any external CSS libraries to include (e.g., Google Fonts, Font Awesome). Can be empty.
- "external_js_files": An array of CDN URLs for any external JavaScript libraries to include (e.g., jQuery, GSAP). Can be empty.
"""

CREATE_IMAGE_NOTE = "The user has also provided an image as a visual reference. Incorporate the style, colors, and content from the image into your design."

EDIT_IMAGE_NOTE = "The user has also provided an image as a visual reference for this edit. Incorporate the style, colors, and content from the image into your changes."

CREATE_SITE_PROMPT = """{personalization_context}You are an expert full-stack web developer tasked with building a single-page website from scratch.
The user's request is: "{user_prompt}".
{image_note}
Your goal is to generate a complete, visually appealing, and functional website.
First, create a title. Second, provide a step-by-step plan. Then, provide the complete code for HTML, CSS, and JavaScript.
{output_instructions}"""

EDIT_SITE_PROMPT = """{personalization_context}You are an expert full-stack web developer. You are currently editing an existing website.
The user's request is: "{user_prompt}".
{image_note}

Here is the current code for the website:
Title: {title}
HTML:
```html
{html}
```

CSS:
```css
{css}
```

JavaScript:
```javascript
{javascript}
```

Your task is to modify the existing code to implement the user's request.
First, provide a step-by-step plan. Then, provide the complete, updated code.
{output_instructions}"""

# Used when the user sends only an image
IMAGE_ONLY_REQUEST = "Recreate the design shown in the attached image."


def build_generation_prompt(
    user_prompt: str,
    existing_code=None,
    has_attachment: bool = False,
    personalization_context: str = "",
) -> str:
    """
    Build the instruction text for one generation.

    ``existing_code`` switches to edit mode; its title, HTML, CSS and
    JavaScript are embedded unchanged.
    """
    request_text = user_prompt.strip()
    if not request_text and has_attachment:
        request_text = IMAGE_ONLY_REQUEST

    if existing_code is not None:
        return EDIT_SITE_PROMPT.format(
            personalization_context=personalization_context or "",
            user_prompt=request_text,
            image_note=EDIT_IMAGE_NOTE if has_attachment else "",
            title=existing_code.title,
            html=existing_code.html,
            css=existing_code.css,
            javascript=existing_code.javascript,
            output_instructions=JSON_OUTPUT_INSTRUCTIONS,
        )

    return CREATE_SITE_PROMPT.format(
        personalization_context=personalization_context or "",
        user_prompt=request_text,
        image_note=CREATE_IMAGE_NOTE if has_attachment else "",
        output_instructions=JSON_OUTPUT_INSTRUCTIONS,
    )
