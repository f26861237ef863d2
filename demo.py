"""
CLI Demo
========
Run either workflow from the terminal.

Usage:
    python demo.py calc "Add 3 and 4."
    python demo.py calc "Calc sqrt(9 + 7)"
    python demo.py crop assets/kettle.webp "This is a product image. Crop it to a 9:16 ratio so that the product is not cropped."
    python demo.py crop photo.png "Crop to the face" --output face.png --max-rejections 2

Environment:
    OPENAI_API_KEY / GROQ_API_KEY / AZURE_OPENAI_*   provider credentials
    AGENT_MAX_STEPS, AGENT_MAX_REJECTIONS, CROP_OUTPUT_PATH   see toolgraph/settings.py
    LOG_LEVEL                                        logging level (default WARNING)

The crop workflow only writes the output file when the approver accepts the
crop; a rejected crop leaves nothing on disk.
"""
import argparse
import asyncio
import json
import logging
import os
import sys

from langchain_core.messages import messages_to_dict

from toolgraph import AgentSession, ModelInvocationError, StepLimitExceeded
from toolgraph.session import summarize_crop


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Tool-calling agent graphs")
    sub = parser.add_subparsers(dest="command", required=True)

    calc = sub.add_parser("calc", help="arithmetic agent (add / sqrt tools)")
    calc.add_argument("question")

    crop = sub.add_parser("crop", help="image crop agent with approval loop")
    crop.add_argument("image")
    crop.add_argument("instruction")
    crop.add_argument("--output", default=None, help="where to save an approved crop")
    crop.add_argument("--max-rejections", type=int, default=None)

    parser.add_argument("--max-steps", type=int, default=None)
    return parser.parse_args(argv)


async def _calc(args) -> int:
    session = AgentSession("arithmetic", max_steps=args.max_steps)
    result = await session.ask(args.question)

    print("~~~ result")
    print(json.dumps(messages_to_dict(result["state"]["messages"]), indent=2))
    print(f"\nAgent: {result['content']}")
    return 0


async def _crop(args) -> int:
    session = AgentSession(
        "crop", max_steps=args.max_steps, max_rejections=args.max_rejections,
    )
    result = await session.crop(args.image, args.instruction, output_path=args.output)

    print("\n=== Final Result ===")
    print(summarize_crop(result["state"]))

    if result["output_path"]:
        print(f"\n✓ Cropped image saved to: {result['output_path']}")
        return 0
    if result["status"] == "rejected":
        print("\n✗ Crop was rejected. No output saved.")
    return 1


async def main(argv=None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        if args.command == "calc":
            return await _calc(args)
        return await _crop(args)
    except ModelInvocationError as exc:
        print(f"\n[error] model call failed ({exc.category}, status={exc.status}): {exc}", file=sys.stderr)
    except StepLimitExceeded as exc:
        print(f"\n[error] {exc}", file=sys.stderr)
    except OSError as exc:
        print(f"\n[error] file access failed: {exc}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
