from typing import Any, Dict, List, Self, Union

import httpx
import pydantic

from . import util


class BaseModel(pydantic.BaseModel):
    """Closed model base: unknown keys are rejected."""
    model_config = pydantic.ConfigDict(extra="forbid")

    @classmethod
    def from_list(cls, args: List[Dict[str, Any]]) -> List[Self]:
        return [cls.model_validate(obj) for obj in args]

    @classmethod
    def from_response(
            cls,
            response: httpx.Response | util.JsonType,
            expect: type[list] | type[dict] = dict
    ) -> Union[Self, List[Self]]:
        """Build model(s) out of the 'obj' of a panel envelope.

        If you want to make out a list or dict, please pass the type as expect.
        """
        if isinstance(response, httpx.Response):
            json_resp: util.JsonType = response.json()
        else:
            json_resp = response
        valid = util.check_response_validity(json_resp)
        if valid != "OK":
            raise ValueError(f"Invalid panel response, code {valid}")
        obj = json_resp["obj"]
        if expect is list:
            return cls.from_list(obj or [])
        return cls.model_validate(obj)
