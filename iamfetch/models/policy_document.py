import json
from typing import Any, Dict, Mapping, Union
from urllib.parse import unquote

from pydantic import RootModel, ValidationError

from iamfetch.core.exceptions import PolicyDocumentError


class PolicyDocument(RootModel[Dict[str, Any]]):
    """
    A parsed IAM or bucket policy body.

    Only the JSON structure is checked here. Statement semantics are left to
    whoever consumes the snapshot.
    """

    @classmethod
    def from_json(cls, text: str) -> "PolicyDocument":
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise PolicyDocumentError(f"Invalid policy document: {e}") from e

    @classmethod
    def from_encoded_json(cls, value: Union[str, Mapping[str, Any]]) -> "PolicyDocument":
        """
        Build a document from an IAM API policy field.

        The raw IAM API returns URL-encoded JSON; boto3 decodes those fields
        into dicts before handing them over. Both forms are accepted.
        """
        if isinstance(value, Mapping):
            return cls(dict(value))
        if not isinstance(value, str):
            raise PolicyDocumentError(f"Unsupported policy document type: {type(value).__name__}")
        return cls.from_json(unquote(value))

    @property
    def document(self) -> Dict[str, Any]:
        return self.root

    def to_json(self, indent: int = 4) -> str:
        return json.dumps(self.root, indent=indent)
