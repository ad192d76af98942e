"""
Command-line adapter for imagegen.

Architectural role:
- Parses flags and resolves the API key.
- Prints operator-facing status lines to stdout.
- Delegates generation to `imagegen.image.service`.

Request lifecycle (one invocation):
1. Parse `--prompt`, `--output`, `--api-key`, `--size`.
2. Validate size, credential and endpoint (no network call on failure).
3. Generate and normalize the image.
4. Create the output directory when missing and write the image atomically.

Input validation behavior:
- Empty/blank prompt is rejected by the parser.
- `--size` must be `WIDTHxHEIGHT`, each side 1..4096.
- Missing `--api-key` falls back to `GEMINI_API_KEY`.

Error handling strategy:
- Any `ImageGenError` prints `Error: <message>` to stderr and exits 1.
- Ctrl-C aborts the in-flight request and exits 130.

Side effects:
- May create the output directory.
- Writes exactly one file, only after the image is complete.
"""

import argparse
import logging
import os
import sys

from imagegen.errors import ImageGenError
from imagegen.image import service
from imagegen.image.provider_config import DEFAULT_SIZE, get_endpoint, resolve_api_key

logger = logging.getLogger(__name__)

LOG_LEVEL = os.getenv("IMAGEGEN_LOG_LEVEL", "WARNING").upper()

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _non_empty(value: str) -> str:
    if not value or not value.strip():
        raise argparse.ArgumentTypeError("prompt cannot be empty")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imagegen",
        description="Generate images from a text prompt using the Google Gemini API",
    )
    parser.add_argument(
        "-p", "--prompt", required=True, type=_non_empty,
        help="The text prompt to generate an image from",
    )
    parser.add_argument(
        "-o", "--output", required=True,
        help="The output path where the generated image will be saved",
    )
    parser.add_argument(
        "-k", "--api-key", default=None,
        help="Google Gemini API key. Falls back to the GEMINI_API_KEY environment variable",
    )
    parser.add_argument(
        "-s", "--size", default=DEFAULT_SIZE,
        help=f"Output size as WIDTHxHEIGHT (default: {DEFAULT_SIZE})",
    )
    parser.add_argument(
        "--keep-original-size", action="store_true",
        help="Write the upstream image as returned, without resizing",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    return parser


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, LOG_LEVEL, logging.WARNING)
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)-5s %(name)s - %(message)s",
    )


# =========================================================
# MAIN
# =========================================================

def run(args) -> int:
    """Execute one generation for parsed `args`; return the process exit code."""
    output_path = os.path.abspath(args.output)

    print("ImageGen - Generating image using Google Gemini API")
    print(f"Prompt: {args.prompt}")
    print(f"Output: {output_path}")
    print()

    try:
        api_key, key_source = resolve_api_key(args.api_key)
        request = service.build_request(args.prompt, args.size, api_key)
        endpoint = get_endpoint()
        print(f"Using API key from {key_source}")

        print("Generating image...")
        data = service.generate_image(
            request, normalize=not args.keep_original_size, endpoint=endpoint
        )

        created = service.ensure_parent_dir(output_path)
        if created:
            print(f"Creating output directory: {created}")

        print("Saving image...")
        size = service.save_image(output_path, data)

    except ImageGenError as e:
        logger.debug("Generation failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    except OSError as e:
        print(f"Error: could not write {output_path}: {e}", file=sys.stderr)
        return EXIT_FAILURE

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        return EXIT_INTERRUPTED

    print()
    print("Image generated successfully!")
    print(f"Saved to: {output_path}")
    print(f"Size: {size:,} bytes")
    return EXIT_OK


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
