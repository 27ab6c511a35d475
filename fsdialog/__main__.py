"""``python -m fsdialog`` runs the same listing command as the console script."""

from .cli import main


if __name__ == "__main__":
    main()
