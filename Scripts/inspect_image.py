import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Tuple

import cv2

from detkit import Position, RectSize, load_class_names
from map_inspector import InspectorProfile, load_inspector_profile, open_session


def _parse_pair(text: str, sep: str, name: str) -> Tuple[float, float]:
    parts = [p.strip() for p in text.split(sep)]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"{name} must look like A{sep}B, got {text!r}")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{name} must be numeric, got {text!r}") from exc


def _viewport_arg(text: str) -> Tuple[float, float]:
    return _parse_pair(text.lower(), "x", "--viewport")


def _point_arg(text: str) -> Tuple[float, float]:
    return _parse_pair(text, ",", "point")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run crop detection at cursor positions over a panned/zoomed image view."
    )
    parser.add_argument("--image", required=True, help="Path to the source image.")
    parser.add_argument("--model", default="Models/model.onnx", help="Path to an ONNX detector.")
    parser.add_argument("--metadata", default=None, help="Optional class metadata (names mapping).")
    parser.add_argument("--config", default=None, help="Optional inspector profile JSON.")
    parser.add_argument("--viewport", type=_viewport_arg, default=(1280.0, 720.0), help="Viewport size, e.g. 1280x720.")
    parser.add_argument(
        "--cursor",
        type=_point_arg,
        action="append",
        default=None,
        help="Viewport cursor X,Y to detect at (repeatable). Defaults to the viewport center.",
    )
    parser.add_argument("--zoom", type=float, default=0.0, help="Zoom delta applied after load (scaled by zoom_rate).")
    parser.add_argument("--pan", type=_point_arg, default=None, help="Pan DX,DY in viewport pixels after load.")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold (overrides profile).")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS (overrides profile).")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--out", default=None, help="Optional output path for the rendered view.")
    parser.add_argument("--show", action="store_true", help="Show a window with the rendered view.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    profile = load_inspector_profile(Path(args.config)) if args.config else InspectorProfile()
    if args.conf is not None:
        profile = replace(profile, conf_threshold=args.conf)
    if args.iou is not None:
        profile = replace(profile, iou_threshold=args.iou)

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    vw, vh = args.viewport
    session = open_session(
        args.model,
        viewport_size=RectSize(int(vw), int(vh)),
        profile=profile,
        onnx_providers=onnx_providers,
    )
    if args.metadata:
        session.class_names = load_class_names(args.metadata)

    session.load_image_file(args.image)
    if args.zoom:
        session.zoom(args.zoom)
    if args.pan is not None:
        session.pan(*args.pan)

    cursors: List[Tuple[float, float]] = args.cursor or [(vw / 2, vh / 2)]
    for cx, cy in cursors:
        added = session.detect_at(Position(cx, cy))
        logging.getLogger(__name__).info("cursor (%.0f, %.0f): %d candidates", cx, cy, len(added))

    for det in session.store:
        name = session.class_names.get(det.class_id, str(det.class_id))
        print(name, f"{det.confidence:.3f}", tuple(round(v, 1) for v in det.as_xywh()))

    vis = session.frame if session.frame is not None else session.render()
    if args.out:
        ok = cv2.imwrite(args.out, vis)
        if not ok:
            raise RuntimeError(f"Failed to write output image: {args.out}")

    if args.show:
        cv2.imshow("inspector", vis)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
