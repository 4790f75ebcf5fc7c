"""CLI entry point for lattice.

Works on saved projects: either a project JSON file or a workspace
directory holding ``.lattice/project.json``.
"""

import argparse
import asyncio
import getpass
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import SecretStr, ValidationError

from lattice.core import get_logger, setup_logging
from lattice.editor import Editor
from lattice.generation import GenerationStatus
from lattice.host import FileWorkspace, HostSession
from lattice.ir import LatticeProject, Page
from lattice.llm import AIService, LLMError
from lattice.output import format_box_tree
from lattice.prompt import PromptPair, assemble_box_prompts, assemble_page_prompts

# Load environment variables from .env file
load_dotenv()

logger = get_logger("cli")


# =============================================================================
# Project Files
# =============================================================================


def _project_path(location: Path) -> Path:
    if location.is_dir():
        return FileWorkspace(location).project_path
    return location


def _load_project(location: Path) -> LatticeProject | None:
    path = _project_path(location)
    if not path.exists():
        logger.error(f"Project file not found: {path}")
        return None
    try:
        return LatticeProject.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        logger.error(f"Invalid project file {path}: {e.error_count()} error(s)")
        return None


def _save_project(project: LatticeProject, location: Path) -> Path:
    if location.is_dir():
        return FileWorkspace(location).save_project(project)
    location.write_text(json.dumps(project.to_json_dict(), indent=2) + "\n", encoding="utf-8")
    return location


def _select_page(project: LatticeProject, page_id: str | None) -> Page | None:
    if not project.pages:
        logger.error("Project has no pages")
        return None
    if page_id is None:
        return project.pages[0]
    for page in project.pages:
        if page.id == page_id or page.name == page_id:
            return page
    logger.error(f"Unknown page: {page_id}")
    logger.info("Available pages:")
    for page in project.pages:
        logger.info(f"  {page.id} ({page.name})")
    return None


def _add_project_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "project",
        type=Path,
        help="Project JSON file or workspace directory containing .lattice/project.json",
    )


def _add_page_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--page",
        "-p",
        type=str,
        default=None,
        help="Page id or name (default: first page)",
    )


def _add_config_dir_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory for AI settings and secrets (default: LATTICE_CONFIG_DIR or ~/.lattice)",
    )


# =============================================================================
# Prompt Command
# =============================================================================


def _print_prompts(prompts: PromptPair, part: str) -> None:
    if part == "system":
        print(prompts.system_prompt)
    elif part == "user":
        print(prompts.user_prompt)
    else:
        print("## System Prompt\n")
        print(prompts.system_prompt)
        print("\n## User Prompt\n")
        print(prompts.user_prompt)
    logger.info(f"Estimated prompt size: ~{prompts.total_tokens_estimate} tokens")


def cmd_prompt_page(args: argparse.Namespace) -> int:
    """Handle the prompt page command."""
    project = _load_project(args.project)
    if project is None:
        return 1
    page = _select_page(project, args.page)
    if page is None:
        return 1

    prompts = assemble_page_prompts(
        page, project.boxes, project.context, project.shared_components
    )
    _print_prompts(prompts, args.part)
    return 0


def cmd_prompt_box(args: argparse.Namespace) -> int:
    """Handle the prompt box command."""
    project = _load_project(args.project)
    if project is None:
        return 1
    box = project.boxes.get(args.box_id)
    if box is None:
        logger.error(f"Unknown box: {args.box_id}")
        return 1

    prompts = assemble_box_prompts(
        box, project.boxes, project.context, project.shared_components
    )
    _print_prompts(prompts, args.part)
    return 0


def handle_prompt_command(argv: list[str]) -> int:
    """Handle prompt-specific commands."""
    parser = argparse.ArgumentParser(
        prog="python -m lattice prompt",
        description="Print the prompts a generation would send",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    page_parser = subparsers.add_parser("page", help="Prompts for a whole page")
    _add_project_argument(page_parser)
    _add_page_argument(page_parser)
    page_parser.set_defaults(func=cmd_prompt_page)

    box_parser = subparsers.add_parser("box", help="Prompts for a single box")
    _add_project_argument(box_parser)
    box_parser.add_argument("box_id", type=str, help="Box id")
    box_parser.set_defaults(func=cmd_prompt_box)

    for sub in (page_parser, box_parser):
        sub.add_argument(
            "--part",
            type=str,
            default="both",
            choices=["system", "user", "both"],
            help="Which prompt to print (default: both)",
        )

    if not argv:
        parser.print_help()
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


# =============================================================================
# Tree Command
# =============================================================================


def handle_tree_command(argv: list[str]) -> int:
    """Print a page's box tree."""
    parser = argparse.ArgumentParser(
        prog="python -m lattice tree",
        description="Print a page's box tree",
    )
    _add_project_argument(parser)
    _add_page_argument(parser)
    parser.add_argument(
        "--all",
        "-a",
        action="store_true",
        help="Print every page",
    )

    if not argv:
        parser.print_help()
        return 1

    args = parser.parse_args(argv)
    project = _load_project(args.project)
    if project is None:
        return 1

    if args.all:
        pages = project.pages
    else:
        page = _select_page(project, args.page)
        if page is None:
            return 1
        pages = [page]

    print("\n\n".join(format_box_tree(p, project.boxes, project.shared_components) for p in pages))
    return 0


# =============================================================================
# Generate Command
# =============================================================================


async def _run_generation(editor: Editor, service: AIService, outbox: list) -> None:
    """Dispatch queued editor messages to an in-process host, streaming to stdout."""

    def deliver(message) -> None:
        if message.type == "generateChunk":
            sys.stdout.write(message.payload.text)
            sys.stdout.flush()
        editor.handle(message)

    session = HostSession(service, deliver)
    for message in outbox:
        await session.dispatch(message)
    await session.drain()


def cmd_generate(args: argparse.Namespace) -> int:
    """Handle the generate page and generate box commands."""
    project = _load_project(args.project)
    if project is None:
        return 1

    service = AIService(args.config_dir)
    config = service.get_config().masked()
    if args.model:
        config = config.model_copy(update={"model": args.model})

    outbox: list = []
    editor = Editor.from_project(project, send=outbox.append)
    editor.ai_config = config

    if args.command == "page":
        page = _select_page(project, args.page)
        if page is None:
            return 1
        request_id = editor.generate_page(page.id)
    else:
        request_id = editor.generate_box(args.box_id)
        if request_id is None:
            logger.error(f"Unknown box: {args.box_id}")
            return 1

    targets = editor.generation.targets_for(request_id)
    if args.model:
        for message in outbox:
            message.payload.model = args.model

    logger.info(f"Generating with {config.provider} / {config.model}")
    asyncio.run(_run_generation(editor, service, outbox))
    print()

    if editor.generation.status(targets[0]) != GenerationStatus.COMPLETE:
        for notification in editor.notifications.notifications:
            logger.error(notification.message)
        return 1

    if args.output:
        args.output.write_text(editor.current_code(targets[0]) + "\n", encoding="utf-8")
        logger.info(f"Code saved to {args.output}")

    if args.save:
        path = _save_project(editor.to_project(), args.project)
        logger.info(f"Project saved to {path}")
    return 0


def handle_generate_command(argv: list[str]) -> int:
    """Handle generate-specific commands."""
    parser = argparse.ArgumentParser(
        prog="python -m lattice generate",
        description="Generate component code for a page or box",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    page_parser = subparsers.add_parser("page", help="Generate a whole page")
    _add_project_argument(page_parser)
    _add_page_argument(page_parser)

    box_parser = subparsers.add_parser("box", help="Generate a single box")
    _add_project_argument(box_parser)
    box_parser.add_argument("box_id", type=str, help="Box id")

    for sub in (page_parser, box_parser):
        sub.add_argument(
            "--model",
            "-m",
            type=str,
            default=None,
            help="Model name (default: configured model)",
        )
        sub.add_argument(
            "--output",
            "-o",
            type=Path,
            default=None,
            help="Write the generated code to this file",
        )
        sub.add_argument(
            "--save",
            action="store_true",
            help="Write the project back with the new version recorded",
        )
        _add_config_dir_argument(sub)
        sub.set_defaults(func=cmd_generate)

    if not argv:
        parser.print_help()
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


# =============================================================================
# Config Command
# =============================================================================


def cmd_config_show(args: argparse.Namespace) -> int:
    """Handle the config show command."""
    config = AIService(args.config_dir).get_config()
    print(f"Provider:     {config.provider}")
    print(f"Model:        {config.model}")
    print(f"Temperature:  {config.temperature}")
    print(f"Max tokens:   {config.max_tokens}")
    print(f"API key:      {'configured' if config.has_api_key else 'not set'}")
    return 0


def cmd_config_set(args: argparse.Namespace) -> int:
    """Handle the config set command."""
    service = AIService(args.config_dir)
    current = service.get_config()

    updates: dict = {"api_key": None}
    if args.provider and args.provider != current.provider:
        adapter = service.get_provider(args.provider)
        if adapter is None:
            logger.error(f"Unknown AI provider: {args.provider}")
            logger.info(f"Available providers: {', '.join(service.provider_info())}")
            return 1
        updates["provider"] = args.provider
        updates["model"] = adapter.default_model
    if args.model:
        updates["model"] = args.model
    if args.temperature is not None:
        updates["temperature"] = args.temperature
    if args.max_tokens is not None:
        updates["max_tokens"] = args.max_tokens
    if args.api_key:
        updates["api_key"] = SecretStr(getpass.getpass("API key: "))

    config = current.model_copy(update=updates)
    try:
        service.set_config(config)
    except LLMError as e:
        logger.error(str(e))
        return 1
    return cmd_config_show(args)


def handle_config_command(argv: list[str]) -> int:
    """Handle config-specific commands."""
    parser = argparse.ArgumentParser(
        prog="python -m lattice config",
        description="Show or change AI provider settings",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    show_parser = subparsers.add_parser("show", help="Show current settings")
    _add_config_dir_argument(show_parser)
    show_parser.set_defaults(func=cmd_config_show)

    set_parser = subparsers.add_parser("set", help="Change settings")
    set_parser.add_argument("--provider", type=str, default=None, help="Provider id")
    set_parser.add_argument("--model", "-m", type=str, default=None, help="Model name")
    set_parser.add_argument("--temperature", type=float, default=None, help="Sampling temperature")
    set_parser.add_argument("--max-tokens", type=int, default=None, help="Output token budget")
    set_parser.add_argument(
        "--api-key",
        action="store_true",
        help="Prompt for the provider API key and store it in the secret store",
    )
    _add_config_dir_argument(set_parser)
    set_parser.set_defaults(func=cmd_config_set)

    if not argv:
        parser.print_help()
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


# =============================================================================
# Providers Command
# =============================================================================


def handle_providers_command(argv: list[str]) -> int:
    """List providers, their models and whether a key is configured."""
    parser = argparse.ArgumentParser(
        prog="python -m lattice providers",
        description="List AI providers and models",
    )
    _add_config_dir_argument(parser)
    args = parser.parse_args(argv)

    service = AIService(args.config_dir)
    active = service.get_config().provider
    for provider_id, info in service.provider_info().items():
        marker = "*" if provider_id == active else " "
        print(f"{marker} {provider_id} ({info['name']})")
        for model in info["models"]:
            default = " (default)" if model == info["defaultModel"] else ""
            print(f"      {model}{default}")
    return 0


# =============================================================================
# Entry Point
# =============================================================================


def show_help() -> None:
    """Display CLI help message."""
    print("Usage: python -m lattice {command} [args]")
    print("\n=== Projects ===")
    print("  tree       Print a page's box tree")
    print("  prompt     Print the prompts for a page or box")
    print("  generate   Generate component code for a page or box")
    print("\n=== Settings ===")
    print("  config     Show or change AI provider settings")
    print("  providers  List AI providers and models")
    print("\nExamples:")
    print("  python -m lattice tree . --all")
    print("  python -m lattice prompt page . --page Home")
    print("  python -m lattice generate box . <box-id> -o src/components/Hero.tsx")
    print("  python -m lattice generate page project.json --save")
    print("  python -m lattice config set --provider anthropic --api-key")


def main() -> int:
    """Main entry point for the CLI."""
    if len(sys.argv) < 2:
        show_help()
        return 1

    command = sys.argv[1]
    rest_args = sys.argv[2:]

    if command in ("-h", "--help"):
        show_help()
        return 0

    commands = {
        "tree": lambda: handle_tree_command(rest_args),
        "prompt": lambda: handle_prompt_command(rest_args),
        "generate": lambda: handle_generate_command(rest_args),
        "config": lambda: handle_config_command(rest_args),
        "providers": lambda: handle_providers_command(rest_args),
    }

    if command in commands:
        setup_logging()
        return commands[command]()

    logger.error(f"Unknown command: {command}")
    show_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
