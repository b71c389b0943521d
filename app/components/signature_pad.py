"""
Signature capture for phase sign-off.
A typed name is rendered into a PNG so the report can show a signature image.
"""

import base64
import io
from typing import Optional

import streamlit as st
from PIL import Image, ImageDraw, ImageFont

from utils.validators import validate_signature

SIGNATURE_SIZE = (480, 140)


def typed_signature_data_url(name: str) -> str:
    """
    Render a typed name as a signature image.

    Args:
        name: Signer's name

    Returns:
        PNG data URL
    """
    image = Image.new("RGB", SIGNATURE_SIZE, "white")
    draw = ImageDraw.Draw(image)
    try:
        font = ImageFont.truetype("DejaVuSans-Oblique.ttf", 40)
    except OSError:
        font = ImageFont.load_default()

    draw.text((20, 45), name.strip(), fill="#1f2937", font=font)
    draw.line((20, 110, SIGNATURE_SIZE[0] - 20, 110), fill="#6b7280", width=2)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def render_signature_pad(key: str, title: str = "Signature") -> Optional[str]:
    """
    Render the signature form.

    Args:
        key: Unique widget key (one per phase)
        title: Heading shown above the form

    Returns:
        Signature data URL once submitted and valid, otherwise None
    """
    with st.form(key=f"signature_form_{key}"):
        st.markdown(f"**✍️ {title}**")
        name = st.text_input("Full name", key=f"signature_name_{key}")
        agreed = st.checkbox(
            "I confirm the inspection results above are accurate",
            key=f"signature_agree_{key}",
        )
        submitted = st.form_submit_button("Sign & Complete", type="primary")

    if not submitted:
        return None

    if not agreed:
        st.error("Please confirm the inspection results before signing.")
        return None

    is_valid, error, normalized = validate_signature(name)
    if not is_valid:
        st.error(error)
        return None

    return typed_signature_data_url(normalized)
