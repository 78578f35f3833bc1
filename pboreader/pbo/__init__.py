"""PBO header table codec, archive index, and entry streams."""
