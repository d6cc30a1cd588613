from typing import Any

# Pricing inputs are accepted as anything and parsed leniently by services.pricing;
# a malformed number degrades to 0 instead of failing validation.
Lenient = Any
