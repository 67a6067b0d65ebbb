"""Allow `python -m nebula_cert_comment`."""

from nebula_cert_comment.main import run

run()
