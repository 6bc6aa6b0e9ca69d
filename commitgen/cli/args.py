"""CLI Argument Parsing"""

import argparse
import argcomplete

from commitgen import __version__
from commitgen.llm import PROVIDERS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='cm',
        description='Generate commit message options from staged changes with fast and deep models',
        epilog='Example: cm (pick an option, it becomes the pending commit message)'
    )

    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')

    # Generation options
    parser.add_argument('--hint', type=str, metavar='TEXT', help='Add context: --hint "fixing the login bug"')
    parser.add_argument('--no-deep', action='store_true', help='Skip the deep (reasoning) backend')
    parser.add_argument('--language', type=str, metavar='LANG', help='Language of the generated messages')
    parser.add_argument('--preview', action='store_true', help='Show the preprocessed staged files and stop')

    # LLM options
    parser.add_argument('-p', '--provider', type=str, choices=PROVIDERS, help='LLM provider')
    parser.add_argument('--base-url', type=str, metavar='URL', help='Chat completions base URL')
    parser.add_argument('--fast-model', type=str, metavar='MODEL', help='Model for the fast backend')
    parser.add_argument('--deep-model', type=str, metavar='MODEL', help='Model for the deep backend')

    # Output options
    parser.add_argument('--no-apply', action='store_true', help='Do not write the chosen message for git commit')
    parser.add_argument('--no-copy', action='store_true', help='Do not copy the chosen message to the clipboard')
    parser.add_argument('--json', action='store_true', help='Print all options as JSON and exit')
    parser.add_argument('--verbose', action='store_true', help='Show debug info (prompt size, tokens, timings)')

    # Setup/config
    parser.add_argument('--setup', action='store_true', help='Configure defaults')
    parser.add_argument('--display-config', action='store_true', help='Show current configuration')
    parser.add_argument('--install-completion', action='store_true', help='Install shell tab completion')

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    argcomplete.autocomplete(parser)
    return parser.parse_args(argv)
