import os
import yaml
import keyring
from keyring.errors import PasswordDeleteError

APP_VERSION = "1.0.0"
DEFAULT_PATH = os.environ.get("FITDASH_CONFIG", "fitdash.yaml")


class YamlConfig:
    """Load and save client state to a YAML file with optional encryption.

    With ``ENCRYPT_SETTINGS=1`` the auth token is kept in the system
    keyring and the file only records that one is stored.
    """

    SENSITIVE_KEYS = {
        "token",
    }

    def __init__(self, path: str = DEFAULT_PATH) -> None:
        self.path = path
        self.encrypt = os.environ.get("ENCRYPT_SETTINGS") == "1"
        self.service = "fitdash"

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if self.encrypt:
            for key in list(data.keys()):
                if key in self.SENSITIVE_KEYS:
                    secret = keyring.get_password(self.service, key)
                    if secret is not None:
                        data[key] = secret
                    else:
                        data.pop(key, None)
        return data

    def save(self, data: dict) -> None:
        out = dict(data)
        if self.encrypt:
            for key in self.SENSITIVE_KEYS:
                if key in out:
                    keyring.set_password(self.service, key, str(out[key]))
                    out[key] = True
                else:
                    self._forget(key)
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f)

    def update(self, **values) -> dict:
        """Merge ``values`` into the stored data; ``None`` removes a key."""
        data = self.load()
        for key, value in values.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
        self.save(data)
        return data

    def _forget(self, key: str) -> None:
        try:
            keyring.delete_password(self.service, key)
        except PasswordDeleteError:
            pass
