import base64

from io import BytesIO

import numpy as np

from PIL import Image, ImageDraw


def to_rgb_array(image: np.ndarray) -> np.ndarray:
    """Converts a raster to an (H, W, 3) uint8 RGB array.

    Args:
        image: Array of shape (H, W), (H, W, 3) or (H, W, 4) with values in
            [0, 255]. Alpha is dropped.

    Returns:
        np.ndarray: RGB copy of the image.
    """
    image = np.asarray(image)
    if image.ndim == 2:
        image = np.repeat(image[:, :, None], 3, axis=2)
    elif image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Unsupported image shape {image.shape}")
    return np.clip(image[:, :, :3], 0, 255).astype(np.uint8)


def brightness(image: np.ndarray) -> np.ndarray:
    """Per-pixel brightness as the mean of the RGB channels, shape (H, W)."""
    image = np.asarray(image, dtype=np.float64)
    if image.ndim == 2:
        return image
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Unsupported image shape {image.shape}")
    return image[:, :, :3].mean(axis=2)


def blank_image(resolution: int) -> np.ndarray:
    """Black square RGB image."""
    return np.zeros((resolution, resolution, 3), dtype=np.uint8)


def draw_box(
    image: np.ndarray,
    box: tuple[int, int, int, int],
    color: tuple[int, int, int] = (0, 255, 0),
    line_width: int = 2,
) -> np.ndarray:
    """Draws a rectangle outline on a copy of an image.

    Args:
        image: Source raster, any shape accepted by `to_rgb_array`.
        box: (min_x, min_y, max_x, max_y) in pixels.
        color: Outline color.
        line_width: Outline width in pixels.

    Returns:
        np.ndarray: Annotated (H, W, 3) uint8 copy.
    """
    pil_image = Image.fromarray(to_rgb_array(image))
    draw = ImageDraw.Draw(pil_image)
    draw.rectangle(box, outline=color, width=line_width)
    return np.array(pil_image)


def encode_image_to_data_url(image: np.ndarray) -> str:
    """Encodes an image as a base64 PNG data URL.

    Args:
        image: Raster of shape (H, W), (H, W, 3) or (H, W, 4).

    Returns:
        str: "data:image/png;base64,..." string.
    """
    img = Image.fromarray(to_rgb_array(image))
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return f"data:image/png;base64,{encoded}"
