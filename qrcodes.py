# link-shortener/qrcodes.py
import base64
import io

import qrcode


def render_qr_code(short_url: str) -> str:
    """Renders `short_url` as a PNG QR code and returns it as a data URI."""
    img = qrcode.make(short_url)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
