from catalogue.decoding.permissive import parse
from catalogue.decoding.strict import decode

__all__ = ["decode", "parse"]
