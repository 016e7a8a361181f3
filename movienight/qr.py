import base64
from io import BytesIO

import qrcode
from qrcode import constants


def render_png(
    data: str,
    box_size: int = 10,
    border: int = 2,
    fill_color: str = "#0a0a0a",
    back_color: str = "#ffffff",
) -> bytes:
    """Render ``data`` as a QR code PNG. Raises DataOverflowError if it
    does not fit the largest QR version."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color=fill_color, back_color=back_color)
    buf = BytesIO()
    img.save(buf)
    return buf.getvalue()


def render_base64_png(data: str) -> str:
    return base64.b64encode(render_png(data)).decode("ascii")
