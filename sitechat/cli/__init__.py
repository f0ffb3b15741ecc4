"""Command-line tools for managing the sitechat corpus."""
