import os
import sys
import unittest
import keyring
import yaml
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig

class DummyKeyring(keyring.backend.KeyringBackend):
    priority = 1
    def __init__(self):
        self.store = {}
    def get_password(self, service, username):
        return self.store.get((service, username))
    def set_password(self, service, username, password):
        self.store[(service, username)] = password
    def delete_password(self, service, username):
        self.store.pop((service, username), None)

class SettingsEncryptionTest(unittest.TestCase):
    def setUp(self) -> None:
        self.keyring = DummyKeyring()
        keyring.set_keyring(self.keyring)
        os.environ['ENCRYPT_SETTINGS'] = '1'
        self.path = 'enc_settings.yaml'
        if os.path.exists(self.path):
            os.remove(self.path)

    def tearDown(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
        os.environ.pop('ENCRYPT_SETTINGS', None)

    def test_encrypt_and_load(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({'token': 'secret', 'theme': 'light'})
        self.assertTrue(os.path.exists(self.path))
        with open(self.path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f)
        self.assertIs(raw['token'], True)
        self.assertEqual(self.keyring.store[('fitdash', 'token')], 'secret')
        data = cfg.load()
        self.assertEqual(data['token'], 'secret')
        self.assertEqual(data['theme'], 'light')

    def test_removed_token_is_forgotten(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({'token': 'secret'})
        cfg.update(token=None, theme='dark')
        self.assertNotIn(('fitdash', 'token'), self.keyring.store)
        self.assertEqual(cfg.load(), {'theme': 'dark'})

    def test_plain_settings(self) -> None:
        os.environ.pop('ENCRYPT_SETTINGS', None)
        cfg = YamlConfig(self.path)
        cfg.save({'token': 'plain'})
        self.assertEqual(cfg.load()['token'], 'plain')
        self.assertEqual(self.keyring.store, {})

if __name__ == '__main__':
    unittest.main()
