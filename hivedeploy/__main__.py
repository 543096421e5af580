"""Allow `python -m hivedeploy`."""

from hivedeploy.main import main

if __name__ == "__main__":
    main()
