"""Interface for building the authorization headers sent with every request."""

import abc
from typing import Dict


class CredentialEncoder(abc.ABC):
    """Abstract Base Class for credential header construction."""

    @abc.abstractmethod
    def headers(self) -> Dict[str, str]:
        """Returns the headers that authenticate a request."""
        pass
