"""Entry point wrapper for ``python -m melody_composer``.

Execution is forwarded to :func:`melody_composer.main` so ``python -m
melody_composer`` and the installed ``melody-composer`` console script behave
identically.

Example
-------
::

    python -m melody_composer --key D4 --scale Dorian --bars 8 \
        --mode Mixture --output song.mid
"""

from . import main

if __name__ == "__main__":
    main()
