# Provider clients. Each exposes generate(prompt, params, timeout) -> raw reply dict
# in the generateContent shape, and fetch_file(uri, timeout) -> bytes.
