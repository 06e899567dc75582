import os
import sys

# Make sure src/lambda is on the path
lambda_root = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if lambda_root not in sys.path:
    sys.path.insert(0, lambda_root)
