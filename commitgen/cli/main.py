"""CLI Main Entry Point"""

import json
import logging
import os
import sys
import time

from commitgen.config import Config, load_config
from commitgen.git import Category, CollectionError, DiffBundle
from commitgen.git.budget import REASON_DIFF_OVERFLOW, REASON_TOO_LARGE, REASON_TOO_MANY_FILES
from commitgen.llm import GenerationResult, LLMError, ResultStatus
from commitgen.output import (
    success, warning, dim, bold, print_error, print_warning, CHECK, Spinner,
    category_label, colorize_commit_type,
)
from commitgen.pipeline import CommitPipeline, PreparedChanges

from commitgen.cli.args import parse_args
from commitgen.cli.commands import display_config, run_setup, run_install_completion
from commitgen.cli.utils import copy_to_clipboard, display_options, edit_message

DEGRADED_REASONS = {
    REASON_TOO_MANY_FILES: "too many staged files",
    REASON_TOO_LARGE: "diff exceeds the prompt budget",
    REASON_DIFF_OVERFLOW: "diff exceeds the read buffer",
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _handle_subcommands(args):
    """Handle subcommands that exit early.

    Returns:
        tuple: (exit_code, should_exit) - exit_code if should_exit is True
    """
    if args.install_completion:
        return run_install_completion(), True
    if args.display_config:
        return display_config(), True
    if args.setup:
        return run_setup(), True
    return 0, False


def _apply_overrides(args, config: Config) -> None:
    """Resolve settings. Precedence: CLI args > environment variables > config file."""
    env = os.environ
    config.provider = args.provider or env.get('CM_PROVIDER') or config.provider
    config.base_url = args.base_url or env.get('CM_BASE_URL') or config.base_url
    config.api_key = env.get('CM_API_KEY') or config.api_key
    config.fast_model = args.fast_model or env.get('CM_FAST_MODEL') or config.fast_model
    config.deep_model = args.deep_model or env.get('CM_DEEP_MODEL') or config.deep_model
    if env.get('CM_TIMEOUT', '').isdigit():
        config.request_timeout = int(env['CM_TIMEOUT'])
    if args.language:
        config.language = args.language
    if args.no_deep:
        config.enable_deep_thinking = False

    for message in config.validate():
        print_warning(message)


def _display_file_list(bundle: DiffBundle, max_shown: int | None) -> None:
    """Show which files will be sent, collapsing long lists.

    Args:
        bundle: budgeted staged changes
        max_shown: Maximum files to display before collapsing, None for all
    """
    if not bundle.changes:
        return
    print(bold("Staged changes:"))
    shown = bundle.changes if max_shown is None else bundle.changes[:max_shown]
    remaining = len(bundle.changes) - len(shown)
    for change in shown:
        detail = f"(+{change.additions} -{change.deletions})"
        if change.category not in (Category.CONTENT, Category.STAT):
            detail = category_label(change.category)
        elif change.truncated:
            detail += " truncated"
        print(dim(f"  {change.path} ") + detail)
    if remaining > 0:
        print(dim(f"  ... and {remaining} more files"))
    if bundle.degraded:
        reason = DEGRADED_REASONS.get(bundle.reason, bundle.reason)
        print(warning(f"  Summary mode: {reason}, sending file names and line counts only"))


def _display_preview(prepared: PreparedChanges) -> None:
    _display_file_list(prepared.bundle, None)
    print()
    print(dim(f"  Prompt: ~{prepared.prompt.estimated_tokens} tokens ({len(prepared.prompt.text)} chars)"))
    for change in prepared.bundle.changes:
        if change.category is Category.CONTENT:
            print(dim(f"  {change.path}: {change.char_count} chars, ~{change.estimated_tokens} tokens"))


def _display_message(message: str) -> None:
    """Display commit message with horizontal rules and colored type."""
    lines = colorize_commit_type(message).split('\n')
    width = max((len(line) for line in message.split('\n')), default=40)
    print(f"\n{dim('─' * width)}")
    print(bold(lines[0]))
    for line in lines[1:]:
        print(line)
    print(dim('─' * width))


def _apply_and_report(pipeline: CommitPipeline, message: str, args) -> None:
    if not args.no_apply:
        try:
            pipeline.apply(message)
            print(f"{success(CHECK)} Set as pending commit message. Run: git commit")
        except (CollectionError, OSError) as e:
            print_warning(f"Could not write commit message: {e}")

    if args.no_copy:
        return
    copied, reason = copy_to_clipboard(message)
    if copied:
        print(f"{success(CHECK)} Copied to clipboard!")
    else:
        print(dim(f"  (Could not copy to clipboard{': ' + reason if reason else ''})"))


def _generate(pipeline: CommitPipeline, prepared: PreparedChanges, is_pipe: bool) -> GenerationResult | None:
    """Run every backend, reporting progress as each one lands."""
    try:
        branches = pipeline.build_branches()
    except LLMError as e:
        print_error(str(e))
        return None

    names = ', '.join(branch.name for branch in branches)
    if is_pipe:
        return pipeline.generate(prepared.prompt, branches=branches)

    print(f"Generating with {bold(names)}...")
    with Spinner() as spinner:
        def on_update(options):
            spinner.write(dim(f"  {len(options)} options ready"))
        return pipeline.generate(prepared.prompt, on_update, branches=branches)


def _report_result(result: GenerationResult, is_pipe: bool) -> bool:
    """Print the single failure message or partial-success note. False on failure."""
    if result.status is ResultStatus.FAILED:
        details = "; ".join(f"{o.backend}: {o.error}" for o in result.outcomes)
        print_error(f"No commit message options generated ({details})")
        return False
    if result.status is ResultStatus.PARTIAL and not is_pipe:
        print(dim(f"  (no options from {', '.join(result.failed_backends)})"))
    return True


def _print_verbose_stats(prepared: PreparedChanges, result: GenerationResult, elapsed: float) -> None:
    print(dim(f"  Prompt: ~{prepared.prompt.estimated_tokens} tokens ({len(prepared.prompt.text)} chars)"))
    for outcome in result.outcomes:
        print(dim(f"  {outcome.backend}: {outcome.kind.value}, {len(outcome.options)} options, {outcome.tokens_used} tokens"))
    print(dim(f"  Generation: {elapsed:.2f}s"))


def _choose(result: GenerationResult, is_interactive: bool) -> str | None:
    options = result.options
    if not is_interactive:
        return options[0].message
    idx = display_options(options)
    if idx is None:
        return None
    return options[idx].message


def _generate_commit_flow(args, config: Config) -> int:
    """Main commit message generation flow.

    Returns:
        int: Exit code
    """
    is_pipe = not sys.stdout.isatty()
    is_interactive = sys.stdin.isatty() and not is_pipe

    try:
        pipeline = CommitPipeline(config)
        prepared = pipeline.prepare(hint=args.hint)
    except CollectionError as e:
        print_error(str(e))
        return 1

    if prepared is None:
        print_error("No staged changes. Run 'git add' first.")
        return 1

    if args.preview:
        _display_preview(prepared)
        return 0

    if not is_pipe and not args.json:
        _display_file_list(prepared.bundle, config.max_file_display)

    while True:
        t0 = time.time()
        result = _generate(pipeline, prepared, is_pipe or args.json)
        if result is None or not _report_result(result, is_pipe):
            return 1
        if args.verbose:
            _print_verbose_stats(prepared, result, time.time() - t0)

        if args.json:
            print(json.dumps([o.to_dict() for o in result.options], ensure_ascii=False, indent=2))
            return 0

        if is_pipe:
            print(result.options[0].message)
            return 0

        message = _choose(result, is_interactive)
        if message is None:
            print(dim("Cancelled."))
            return 0

        _display_message(message)
        if not is_interactive:
            break

        try:
            action = input(f"\n{dim('(e)dit, (r)egenerate, or Enter to accept: ')}").strip().lower()
        except (KeyboardInterrupt, EOFError):
            action = ''

        if action == 'r':
            print("\nRegenerating... ")
            continue
        if action == 'e':
            edited = edit_message(message)
            if edited:
                message = edited
                _display_message(message)
        break

    _apply_and_report(pipeline, message, args)
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    args = parse_args()

    exit_code, should_exit = _handle_subcommands(args)
    if should_exit:
        return exit_code

    _configure_logging(args.verbose)
    config = load_config()
    _apply_overrides(args, config)

    return _generate_commit_flow(args, config)


if __name__ == "__main__":
    sys.exit(main())
