from ferrolint.cli import app


def main() -> None:
    app(prog_name="ferrolint")


if __name__ == "__main__":  # pragma: no cover
    main()
