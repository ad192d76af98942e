"""Image generation package.

Scope:
    Provides the upstream request client, the response payload extractor and the
    dimension normalizer, plus a small service used by the CLI adapter.

Module split:
    - `provider_config`: endpoint variants, fixed constants, credential lookup.
    - `models`: request/payload/result value types.
    - `extractor`: base64 payload lookup in response bodies.
    - `normalizer`: resize + center-crop to an exact size.
    - `client`: HTTP transport.
    - `service`: request validation, client scope and atomic file writes.
"""
