"""
Allow running the package with: python -m photocull

Examples:
    python -m photocull scan /path/to/photos
    python -m photocull cull /path/to/photos --action move --quarantine ~/dupes
    python -m photocull history
    python -m photocull restore last
    python -m photocull config --init       # Create example config file
"""

import sys


def _show_config(init: bool) -> int:
    from .user_config import get_user_config

    config = get_user_config()

    if init:
        if config.create_example_config():
            print("Created example configuration file at:")
            print(f"  {config.config_file_path}")
            print("\nEdit this file to customize photocull settings.")
            return 0
        print("Failed to create configuration file.")
        return 1

    print(f"Configuration file: {config.config_file_path}")
    if config.config_file_path.exists():
        print("Status: found")
    else:
        print("Status: not found (using defaults)")
        print("\nRun 'python -m photocull config --init' to create one.")

    print("\nCurrent settings:")
    for key, value in config.as_dict().items():
        print(f"  {key}: {value}")
    return 0


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    if argv and argv[0] == 'config':
        return _show_config(init='--init' in argv or '-i' in argv)

    from .cli import main as cli_main
    return cli_main(argv)


if __name__ == '__main__':
    sys.exit(main())
