"""
Call result serialization tools

Renders method call results in the caller-facing JSON shape
{statusCode, inputArgumentResults, outputArguments}.
"""

import json
from typing import Any, Dict, Sequence

from opcua_bridge.codec.value_codec import ValueCodec
from opcua_bridge.session import CallMethodResult


def call_result_to_dict(result: CallMethodResult, codec: ValueCodec) -> Dict[str, Any]:
    """Convert a call result to a dictionary

    Args:
        result: Session call result
        codec: Codec used for the output argument Variants

    Returns:
        Dict: statusCode and inputArgumentResults as {name, value, description},
        outputArguments as JSON values
    """
    if result is None:
        return {}

    return {
        "statusCode": result.status_code.to_dict(),
        "inputArgumentResults": [status.to_dict() for status in result.input_argument_results],
        "outputArguments": [codec.to_json(variant) for variant in result.output_arguments],
    }


def call_results_to_json(results: Sequence[CallMethodResult], codec: ValueCodec) -> str:
    """Convert call results to a JSON string

    Args:
        results: Session call results
        codec: Codec used for the output argument Variants

    Returns:
        str: JSON array string
    """
    return json.dumps([call_result_to_dict(result, codec) for result in results])
