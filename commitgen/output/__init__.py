"""Terminal Output Formatting Package"""

import os
import re
import sys
import threading

from commitgen.git import Category


class Colors:
    """ANSI escape codes for terminal colors."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'


def _supports_color() -> bool:
    if os.environ.get('NO_COLOR') or os.environ.get('TERM') == 'dumb':
        return False
    if os.environ.get('FORCE_COLOR'):
        return True
    if not getattr(sys.stdout, 'isatty', None) or not sys.stdout.isatty():
        return False
    if sys.platform != 'win32':
        return True
    try:
        import ctypes
        kernel32 = ctypes.windll.kernel32
        # ENABLE_VIRTUAL_TERMINAL_PROCESSING on the stdout handle
        return bool(kernel32.SetConsoleMode(kernel32.GetStdHandle(-11), 7))
    except (AttributeError, OSError):
        return False


def _supports_unicode() -> bool:
    if sys.platform != 'win32':
        return True
    encoding = getattr(sys.stdout, 'encoding', None) or 'utf-8'
    try:
        '✓⚠─'.encode(encoding)
    except (UnicodeEncodeError, LookupError):
        return False
    return True


COLORS_ENABLED = _supports_color()
UNICODE_ENABLED = _supports_unicode()

CHECK = '✓' if UNICODE_ENABLED else '[OK]'
CROSS = '✗' if UNICODE_ENABLED else '[X]'
WARN = '⚠' if UNICODE_ENABLED else '[!]'


def _colorize(text: str, *codes: str) -> str:
    if not COLORS_ENABLED or not any(codes):
        return text
    return f"{''.join(codes)}{text}{Colors.RESET}"


def _style(*codes: str):
    def apply(text: str) -> str:
        return _colorize(text, *codes)
    return apply


success = _style(Colors.GREEN)
error = _style(Colors.RED)
warning = _style(Colors.YELLOW)
info = _style(Colors.CYAN)
dim = _style(Colors.DIM)
bold = _style(Colors.BOLD)


def print_success(message: str) -> None:
    print(f"{success(CHECK)} {message}")


def print_error(message: str) -> None:
    print(f"{error(CROSS)} {error(message)}", file=sys.stderr)


def print_warning(message: str) -> None:
    print(f"{warning(WARN)} {warning(message)}", file=sys.stderr)


# Subject prefixes the prompts ask for; any other type is only bolded
COMMIT_TYPE_COLORS = {
    'feat': Colors.GREEN,
    'fix': Colors.RED,
    'refactor': Colors.YELLOW,
    'docs': Colors.CYAN,
    'test': Colors.MAGENTA,
    'chore': Colors.DIM,
}

OPTION_TYPE_COLORS = {
    'Emoji': Colors.MAGENTA,
    'StandardShort': Colors.CYAN,
    'Conventional': Colors.GREEN,
    'Smart': Colors.YELLOW,
    'Detailed': Colors.BLUE,
}

# Preview label per category; content files show their line counts instead
CATEGORY_LABELS = {
    Category.DELETED: ('deleted', Colors.RED),
    Category.LOCKFILE: ('lockfile', Colors.DIM),
    Category.BINARY: ('binary', Colors.DIM),
    Category.GENERATED: ('generated', Colors.DIM),
    Category.STAT: ('summary', Colors.YELLOW),
}

_TYPE_PREFIX = re.compile(r'(\w+)(?:\([^)]*\))?!?:')


def colorize_commit_type(message: str) -> str:
    """Highlight the `type(scope):` prefix of the subject line; the body is untouched."""
    subject, newline, body = message.partition('\n')
    match = _TYPE_PREFIX.match(subject)
    if not match:
        return message
    prefix = match.group(0)
    color = COMMIT_TYPE_COLORS.get(match.group(1).lower(), '')
    return _colorize(prefix, Colors.BOLD, color) + subject[len(prefix):] + newline + body


def option_label(option_type: str) -> str:
    """Bold, colored option type tag such as [Conventional]."""
    return _colorize(f"[{option_type}]", Colors.BOLD, OPTION_TYPE_COLORS.get(option_type, ''))


def category_label(category: Category) -> str:
    label, color = CATEGORY_LABELS.get(category, ('', ''))
    return _colorize(f"[{label}]", color) if label else ''

class Spinner:
    """Animated spinner for long operations. Use as context manager."""
    FRAMES_UNICODE = ['⠋', '⠙', '⠹', '⠸', '⠼', '⠴', '⠦', '⠧', '⠇', '⠏']
    FRAMES_ASCII = ['-', '\\', '|', '/']

    def __init__(self, label: str = ""):
        self.label = label
        self._thread = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._frames = self.FRAMES_UNICODE if UNICODE_ENABLED else self.FRAMES_ASCII

    def _spin(self):
        idx = 0
        while not self._stop_event.is_set():
            frame = self._frames[idx % len(self._frames)]
            with self._lock:
                print(f'\r\033[K{frame} {self.label}', end='', flush=True)
            idx += 1
            self._stop_event.wait(0.08)

    def write(self, line: str) -> None:
        """Print a full line above the spinner without tearing it."""
        with self._lock:
            if self._thread:
                print('\r\033[K', end='')
            print(line, flush=True)

    def __enter__(self):
        if sys.stdout.isatty():
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._spin, daemon=True)
            self._thread.start()
        return self

    def __exit__(self, *args):
        self._stop_event.set()
        if self._thread:
            self._thread.join()
            self._thread = None
        if sys.stdout.isatty():
            print('\r\033[K', end='', flush=True)


__all__ = [
    "Colors", "COLORS_ENABLED", "UNICODE_ENABLED",
    "CHECK", "CROSS", "WARN",
    "success", "error", "warning", "info", "dim", "bold",
    "print_success", "print_error", "print_warning",
    "colorize_commit_type", "option_label", "category_label",
    "Spinner", "COMMIT_TYPE_COLORS", "OPTION_TYPE_COLORS",
]
