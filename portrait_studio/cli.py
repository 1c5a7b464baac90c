"""Command-line shell around the generation pipeline."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, List, Optional

from rich.console import Console
from rich.markup import escape

from .assist import StudioAssistant
from .client import GeminiClient
from .config import StudioConfig, load_config
from .encoding import encode_image
from .errors import ConfigError, StudioError, ValidationError, describe_reason, user_message
from .generation import (
    OrchestratorSettings,
    ProgressEvent,
    ProgressKind,
    SessionStatus,
    generate_variations,
)
from .io_utils import create_session, save_results, write_json, write_session_summary
from .logging_utils import RunLogger, create_logger
from .prompts import IDENTITY_SYSTEM_INSTRUCTION, StudioMode, compose_prompt

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2

console = Console(highlight=False)


def _make_client(config: StudioConfig, logger: RunLogger) -> GeminiClient:
    return GeminiClient.from_config(config, logger=logger)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portrait-studio",
        description="Generate portrait variations or restore old photos with a generative image API",
    )
    parser.add_argument("--config", type=Path, help="Path to a TOML or YAML config file")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARN", "ERROR"], help="Override logging.level")
    sub = parser.add_subparsers(dest="command", required=True)

    def _image_run_options(cmd: argparse.ArgumentParser) -> None:
        cmd.add_argument("image", type=Path, help="Reference photo")
        cmd.add_argument("--variations", type=int, help="Number of images to request (1-3)")
        cmd.add_argument(
            "--refill",
            action="store_true",
            default=None,
            help="Keep retrying failed variations until the attempt budget is used",
        )
        cmd.add_argument("--out", type=Path, help="Override output.out_dir")
        cmd.add_argument("--session-id", type=str, help="Explicit session id")
        cmd.add_argument("--seed", type=int, help="Seed for backoff jitter")

    generate = sub.add_parser("generate", help="Create stylistic variations of the pictured person")
    _image_run_options(generate)
    generate.add_argument("--prompt", required=True, help="Creative description of the variations")
    generate.add_argument("--captions", action="store_true", help="Also write social media captions")
    generate.set_defaults(func=_cmd_generate, mode=StudioMode.GENERATE)

    restore = sub.add_parser("restore", help="Restore and enhance an old photo")
    _image_run_options(restore)
    restore.set_defaults(func=_cmd_generate, mode=StudioMode.RESTORE, prompt=None, captions=False)

    enhance = sub.add_parser("enhance", help="Expand a short prompt into a detailed one")
    enhance.add_argument("--prompt", required=True)
    enhance.set_defaults(func=_cmd_enhance)

    caption = sub.add_parser("caption", help="Write social media captions for a photo and prompt")
    caption.add_argument("image", type=Path)
    caption.add_argument("--prompt", required=True)
    caption.set_defaults(func=_cmd_caption)

    backgrounds = sub.add_parser("backgrounds", help="Suggest background scenes for a photo")
    backgrounds.add_argument("image", type=Path)
    backgrounds.set_defaults(func=_cmd_backgrounds)
    return parser


def _progress_printer(target: int) -> Callable[[ProgressEvent], None]:
    def _print(event: ProgressEvent) -> None:
        if event.kind is ProgressKind.ATTEMPT:
            console.print(f"Processing image {event.variation_index} of {target} (attempt {event.attempt})...")
        elif event.kind is ProgressKind.SUCCESS:
            console.print(f"[green]Image {event.variation_index} ready[/green]")
        elif event.outcome is not None:
            console.print(f"[yellow]Variation {event.variation_index} skipped:[/yellow] {escape(event.outcome.detail)}")

    return _print


def _cmd_generate(args: argparse.Namespace, config: StudioConfig, logger: RunLogger) -> int:
    mode = StudioMode(args.mode)
    prompt = compose_prompt(mode, args.prompt)
    if mode is StudioMode.GENERATE and not prompt:
        raise ValidationError("Please provide a text prompt and a reference image.")
    reference = encode_image(args.image)
    client = _make_client(config, logger)

    paths = create_session(config.output.out_dir, args.session_id, prefix=config.output.session_prefix)
    if config.logging.to_file:
        logger.attach_file(paths.log_file)
    target = config.generation.variations
    logger.log("SESSION", f"start id={paths.session_id} mode={mode.value} variations={target}")

    generation = generate_variations(
        reference,
        prompt,
        target,
        IDENTITY_SYSTEM_INSTRUCTION,
        backend=client,
        mode=mode,
        settings=OrchestratorSettings.from_config(config.generation),
        on_progress=_progress_printer(target),
        logger=logger,
    )

    artifacts = logger.timed(
        "SAVE",
        lambda saved: f"{len(saved)} file(s) -> {paths.root}",
        save_results,
        paths,
        mode,
        generation.results,
        prompt,
    )
    extra = {"mode": mode.value, "prompt": prompt, "files": [a.image_path.name for a in artifacts]}

    status = generation.status
    if status is SessionStatus.FAILED:
        write_session_summary(paths, generation, extra)
        last = generation.failures[-1] if generation.failures else None
        reason = describe_reason(last.reason) if last else "No images were produced."
        console.print(f"[red]No image could be produced.[/red] {escape(reason)}")
        return EXIT_FAILED

    if status is SessionStatus.PARTIAL:
        console.print(
            f"[yellow]Only {len(generation.results)} of {target} images were produced.[/yellow]"
        )
    for artifact in artifacts:
        console.print(f"Saved {artifact.image_path}", markup=False)

    if args.captions:
        assistant = StudioAssistant(client, logger=logger)
        try:
            captions = assistant.generate_captions(reference, prompt)
        except StudioError as exc:
            logger.log("ASSIST", f"captions failed: {exc}", level="WARN")
            console.print(f"[yellow]Captions unavailable:[/yellow] {escape(user_message(exc))}")
        else:
            write_json(paths.root / "captions.json", captions.as_dict())
            extra["captions"] = captions.as_dict()
            _print_captions(captions.as_dict())

    write_session_summary(paths, generation, extra)
    console.print(f"Processing time: {generation.elapsed_s:.1f}s")
    logger.log("DONE", f"session={paths.session_id} status={status.value}")
    return EXIT_OK


def _print_captions(captions: dict) -> None:
    for label, text in captions.items():
        console.print(f"[bold]{escape(label)}:[/bold] {escape(text)}")


def _cmd_enhance(args: argparse.Namespace, config: StudioConfig, logger: RunLogger) -> int:
    assistant = StudioAssistant(_make_client(config, logger), logger=logger)
    console.print(assistant.enhance_prompt(args.prompt), markup=False)
    return EXIT_OK


def _cmd_caption(args: argparse.Namespace, config: StudioConfig, logger: RunLogger) -> int:
    reference = encode_image(args.image)
    assistant = StudioAssistant(_make_client(config, logger), logger=logger)
    captions = assistant.generate_captions(reference, compose_prompt(StudioMode.GENERATE, args.prompt) or args.prompt)
    _print_captions(captions.as_dict())
    return EXIT_OK


def _cmd_backgrounds(args: argparse.Namespace, config: StudioConfig, logger: RunLogger) -> int:
    reference = encode_image(args.image)
    assistant = StudioAssistant(_make_client(config, logger), logger=logger)
    for position, suggestion in enumerate(assistant.suggest_backgrounds(reference), start=1):
        console.print(f"{position}. {suggestion}", markup=False)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
        if args.command in {"generate", "restore"}:
            config.apply_overrides(
                variations=args.variations,
                refill_failures=args.refill,
                out_dir=args.out,
                seed=args.seed,
            )
        config.apply_overrides(log_level=args.log_level)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        return EXIT_INVALID

    logger = create_logger(config.logging.level)
    try:
        logger.log("BOOT", f"command={args.command} config={config.path or 'defaults'}")
        return args.func(args, config, logger)
    except (ValidationError, ConfigError) as exc:
        logger.log("BOOT", f"invalid input: {exc}", level="ERROR")
        console.print(f"[red]Error:[/red] {escape(user_message(exc))}")
        return EXIT_INVALID
    except StudioError as exc:
        logger.log("BOOT", f"failed: {exc}", level="ERROR")
        console.print(f"[red]Error:[/red] {escape(user_message(exc))}")
        return EXIT_FAILED
    except Exception as exc:
        logger.log("BOOT", f"fatal {type(exc).__name__}: {exc}", level="ERROR")
        console.print(f"[red]Error:[/red] {escape(user_message(exc))}")
        return EXIT_FAILED
    finally:
        logger.close()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
