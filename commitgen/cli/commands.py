"""CLI Commands"""

import os
import sys

from commitgen.config import Config, DEFAULT_MODELS, load_config, save_config, get_config_path
from commitgen.output import bold, dim, info, print_success

_ENV_OVERRIDES = ('CM_PROVIDER', 'CM_BASE_URL', 'CM_FAST_MODEL', 'CM_DEEP_MODEL', 'CM_TIMEOUT')


def display_config() -> int:
    """Display current configuration."""
    config = load_config()
    config_path = get_config_path()

    print(f"\n{bold('Current Configuration')}\n")

    if config_path:
        print(f"  {dim('Loaded from:')} {config_path}")
    else:
        print(f"  {dim('Loaded from:')} defaults (no .cmrc found)")

    overrides = [name for name in _ENV_OVERRIDES if os.environ.get(name)]
    if overrides:
        print(f"  {dim('Environment overrides:')}")
        for name in overrides:
            print(f"    {name}={os.environ[name]}")
    if os.environ.get('CM_API_KEY') or config.api_key:
        print(f"  {dim('API key:')} set")

    fast_default, deep_default = DEFAULT_MODELS[config.provider]
    print()
    print(f"  {bold('Settings:')}")
    print(f"    provider:             {info(config.provider)}")
    if config.provider == 'openai':
        print(f"    base_url:             {info(str(config.base_url))}")
    print(f"    fast_model:           {info(config.fast_model or fast_default)}")
    print(f"    deep_model:           {info(config.deep_model or deep_default)}")
    print(f"    enable_deep_thinking: {info(str(config.enable_deep_thinking).lower())}")
    print(f"    language:             {info(config.language)}")
    print(f"    max_prompt_chars:     {info(str(config.max_prompt_chars))}")
    print(f"    max_staged_files:     {info(str(config.max_staged_files))}")

    print(f"\n  {dim('Config locations:')}")
    print("    Local:  .cmrc (in current directory)")
    print("    Global: ~/.cmrc")
    print(f"\n  {dim('Run')} cm --setup {dim('to configure')}\n")

    return 0


def _ask_choice(prompt: str, choices: dict[str, str], default: str | None = None) -> str:
    while True:
        choice = input(prompt).strip()
        if choice == '' and default is not None:
            return default
        if choice in choices:
            return choices[choice]


def run_setup() -> int:
    """Quick setup wizard."""
    display_config()
    print(f"{bold('Setup Wizard')}\n")

    print("Choose provider:\n")
    print("  1. OpenAI-compatible chat completions (DeepSeek, OpenAI, Ollama /v1)")
    print("  2. Claude API\n")
    provider = _ask_choice("Select [1/2]: ", {'1': 'openai', '2': 'claude'})

    base_url = None
    if provider == 'openai':
        base_url = input(f"\nBase URL (Enter for {Config.base_url}): ").strip() or Config.base_url

    fast_default, deep_default = DEFAULT_MODELS[provider]
    fast_model = input(f"\nFast model (Enter for {fast_default}): ").strip() or None

    print("\nAlso ask a deep reasoning model for a 'Smart' option? [Y/n]: ", end='')
    enable_deep = input().strip().lower() != 'n'
    deep_model = None
    if enable_deep:
        deep_model = input(f"Deep model (Enter for {deep_default}): ").strip() or None

    language = input("\nMessage language (Enter for English): ").strip() or "English"

    config = Config(
        provider=provider,
        base_url=base_url,
        fast_model=fast_model,
        deep_model=deep_model,
        enable_deep_thinking=enable_deep,
        language=language,
    )
    path = save_config(config, global_config=True)

    print_success(f"Saved to {path}")
    print(dim("Set the API key with: export CM_API_KEY='your-key-here'"))
    return 0


def run_install_completion() -> int:
    """Print shell tab completion setup."""
    shell = os.environ.get('SHELL', '')
    line = 'eval "$(register-python-argcomplete cm)"'

    print(f"\n{bold('Tab Completion Setup')}\n")

    for name in ('zsh', 'bash'):
        if name in shell:
            rc_file = os.path.expanduser(f'~/.{name}rc')
            print(f"Add this line to {dim(rc_file)}:\n")
            print(f"  {line}\n")
            print(f"Then run: {dim(f'source ~/.{name}rc')}")
            break
    else:
        if sys.platform == 'win32':
            print("For PowerShell, run:\n")
            print("  register-python-argcomplete --shell powershell cm | Out-String | Invoke-Expression")
        else:
            print("Run one of these based on your shell:\n")
            print(f"  {dim('# Bash/Zsh')}")
            print(f"  {line}\n")
            print(f"  {dim('# Fish')}")
            print("  register-python-argcomplete --shell fish cm | source")

    print(f"\n{dim('After setup, press TAB to autocomplete flags.')}")
    return 0
