"""Package entry point for ``python -m subtitle_agent``.

HOW: Delegates to the CLI's main() function.
"""

from subtitle_agent.cli import main

if __name__ == "__main__":
    main()
