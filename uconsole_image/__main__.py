# uconsole_image/__main__.py
from uconsole_image.cli import main


if __name__ == "__main__":
    main()
