"""Package entry point for ``python -m whisper_transcriber``.

WHY: Users run the tool as ``python -m whisper_transcriber transcribe
talk.wav`` without installing the console script. Python's ``-m`` flag
looks for ``__main__.py`` inside the package and executes it.

HOW: Delegates straight to the CLI's main() function.
"""

from whisper_transcriber.cli import main

if __name__ == "__main__":
    main()
