from typing import Tuple

import numpy as np

from .errors import InvalidArgumentError


def to_blob(
    image: np.ndarray,
    new_shape: Tuple[int, int] = (640, 640),
    layout: str = "NCHW",
    swap_rb: bool = True,
):
    """
    Stretch a crop to the model input size and pack it as a float32 batch of one.

    No padding is applied: box coordinates map back to the crop by a plain
    per-axis scale (crop_size / model_size).

    Returns:
        blob: (1, 3, H, W) for NCHW or (1, H, W, 3) for NHWC, values in [0, 1]
        ratio: (w_ratio, h_ratio) = model size / crop size
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for to_blob(). Install with `pip install opencv-python`.") from e

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array.")
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise InvalidArgumentError(f"Expected image shape (H, W, 3|4), got {getattr(image, 'shape', None)}")
    if layout not in ("NCHW", "NHWC"):
        raise InvalidArgumentError(f"Unsupported tensor layout: {layout!r}")

    if isinstance(new_shape, int):
        new_shape = (new_shape, new_shape)
    h, w = image.shape[:2]
    new_w, new_h = int(new_shape[0]), int(new_shape[1])

    if image.shape[2] == 4:  # drop alpha (canvas RGBA buffers)
        image = image[:, :, :3]

    if (w, h) != (new_w, new_h):
        image = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

    blob = image[:, :, ::-1] if swap_rb else image
    blob = blob.astype(np.float32) / 255.0
    if layout == "NCHW":
        blob = np.transpose(blob, (2, 0, 1))
    blob = np.ascontiguousarray(blob[None, ...])

    return blob, (new_w / w, new_h / h)
