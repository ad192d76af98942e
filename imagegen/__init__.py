"""imagegen: prompt-to-image command-line tool.

Package split:
    - `image`: upstream client, response extraction and size normalization.
    - `api`: command-line adapter.
    - `errors`: error kinds surfaced to callers.
"""

__version__ = "0.1.0"
