import argparse
import sys
import os
import json
import logging
import cv2

from .adb import Adb
from .answerer import Multimodal
from .config import ENV_PREFIX, ApiSettings
from .core import crop_core, detect_layout, wait_for_question
from .tap import tap_target
from .types import LayoutMatch
from .visualize import draw_candidates_on_image, draw_layout_on_image

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz-layout",
        description="Locate the question block and the four answer bars on a quiz screenshot.",
    )
    parser.add_argument("image", nargs="?", help="Screenshot file to analyse.")
    parser.add_argument("--answer", action="store_true",
                        help="Send the question block to the answering API and print the choice.")
    parser.add_argument("--debug", action="store_true", help="Preview the detection with matplotlib.")
    parser.add_argument("--live", action="store_true",
                        help="Capture the screen of a device, answer the question and tap the choice.")
    parser.add_argument("--devices", action="store_true", help="List adb devices and exit.")
    parser.add_argument("--device", default="", help="Serial of the device to use (default: first authorized).")
    parser.add_argument("--adb", default=os.environ.get(ENV_PREFIX + "ADB", "adb"), help="Path of the adb tool.")
    parser.add_argument("--retries", type=int, default=5, help="Screenshots to try before giving up.")
    parser.add_argument("--delay", type=float, default=1.0, help="Seconds between screenshots.")
    parser.add_argument("--log-level", choices=LOG_LEVELS, type=str.upper,
                        default=os.environ.get(ENV_PREFIX + "LOG_LEVEL", "INFO").upper())
    return parser


def write_outputs(name, img, edges, result):
    os.makedirs("outputs", exist_ok=True)
    json_path = os.path.join("outputs", f"{name}.json")
    vis_path = os.path.join("outputs", f"{name}.jpg")

    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)
    print(f"[OK] Wrote JSON to: {json_path}")

    if isinstance(result, LayoutMatch):
        vis = draw_layout_on_image(img, result)
    else:
        print(f"[FAIL] No quiz layout found ({result.reason}, {len(result.candidates)} candidates)")
        vis = draw_candidates_on_image(edges, result.candidates)
    ok = cv2.imwrite(vis_path, vis)
    if not ok:
        raise RuntimeError(f"Failed to write image: {vis_path}")
    print(f"[OK] Wrote visualization to: {vis_path}")


def run_image(args) -> int:
    img = cv2.imread(args.image, cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"Cannot read image: {args.image}")

    edges, result = detect_layout(img, debug=args.debug)
    write_outputs(os.path.splitext(os.path.basename(args.image))[0], img, edges, result)

    if not isinstance(result, LayoutMatch):
        return 1
    if args.answer:
        with Multimodal(ApiSettings.from_env()) as answerer:
            answer = answerer.answer(crop_core(img, result))
            point = tap_target(result, answer.name)
            print(f"[OK] Answer {answer.name}, tap at ({point.x}, {point.y})")
            print(f"[OK] Tokens: {answerer.tokens}, cost: ${answerer.cost():.6f}")
    return 0


def pick_device(adb: Adb, serial: str) -> str:
    if serial:
        return serial
    authorized = [d.serial for d in adb.devices() if d.authorized]
    if not authorized:
        raise RuntimeError("No authorized adb device found.")
    return authorized[0]


def run_live(args) -> int:
    adb = Adb(args.adb)
    adb.set_device(pick_device(adb, args.device))

    found = wait_for_question(adb.screencap, retries=args.retries, delay=args.delay)
    if found is None:
        print("[FAIL] No question on screen.")
        return 1
    img, match = found

    with Multimodal(ApiSettings.from_env()) as answerer:
        answer = answerer.answer(crop_core(img, match))
        point = adb.tap_random(match.choice(int(answer)))
        print(f"[OK] Answer {answer.name}, tapped ({point.x}, {point.y})")
        print(f"[OK] Tokens: {answerer.tokens}, cost: ${answerer.cost():.6f}")
    return 0


def main(argv=None):
    argv = sys.argv if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(argv[1:])

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname).1s %(name)s: %(message)s",
    )

    if args.devices:
        for d in Adb(args.adb).devices():
            print(f"{d.serial}\t{'device' if d.authorized else 'unauthorized'}")
        return 0
    if args.live:
        return run_live(args)
    if not args.image:
        parser.error("an IMAGE is required unless --live or --devices is given")
    return run_image(args)


if __name__ == "__main__":
    sys.exit(main())
