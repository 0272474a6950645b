from sheet_unify import cli

if __name__ == "__main__":
    cli.app()
