from common.request import raw_body
from common.response import text


def handler(event, context):
    return text("Hello, " + raw_body(event))
