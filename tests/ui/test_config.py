import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch
import yaml

from face_patch.ui.config import (
    EditorConfig,
    create_sample_config,
    get_default_config_path,
    load_config,
    save_config
)


class TestEditorConfig(unittest.TestCase):

    def test_defaults(self):
        config = EditorConfig()

        self.assertEqual(config.feather_ratio, 0.15)
        self.assertEqual(config.min_selection_size, 50)
        self.assertEqual(config.max_crop_dim, 1024)
        self.assertEqual(config.generation_timeout, 90.0)
        self.assertEqual(config.max_retries, 3)
        self.assertEqual(config.default_split, 0.5)
        self.assertIsNone(config.api_key)
        config.validate()

    def test_from_dict_ignores_unknown_keys(self):
        config = EditorConfig.from_dict({'feather_ratio': 0.2, 'unknown': 1})

        self.assertEqual(config.feather_ratio, 0.2)
        self.assertFalse(hasattr(config, 'unknown'))

    def test_validate_rejects_bad_values(self):
        bad_values = [
            {'feather_ratio': 0.7},
            {'max_crop_dim': 0},
            {'generation_timeout': 0},
            {'max_retries': -1},
            {'default_split': 1.5},
            {'divider_base_width': 0},
            {'log_level': 'LOUD'},
        ]
        for values in bad_values:
            with self.subTest(values=values):
                with self.assertRaises(ValueError):
                    EditorConfig.from_dict(values).validate()


class TestConfigFiles(unittest.TestCase):

    def setUp(self):
        """Set up temporary directory."""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up temporary files."""
        shutil.rmtree(self.temp_dir)

    def path(self, name):
        return os.path.join(self.temp_dir, name)

    def test_load_yaml(self):
        with open(self.path('config.yaml'), 'w') as f:
            yaml.safe_dump({'feather_ratio': 0.1, 'max_retries': 1}, f)

        config = load_config(self.path('config.yaml'))

        self.assertEqual(config.feather_ratio, 0.1)
        self.assertEqual(config.max_retries, 1)

    def test_load_json(self):
        with open(self.path('config.json'), 'w') as f:
            json.dump({'model_name': 'other-model'}, f)

        config = load_config(self.path('config.json'))

        self.assertEqual(config.model_name, 'other-model')

    def test_load_errors(self):
        with self.assertRaises(FileNotFoundError):
            load_config(self.path('missing.yaml'))

        with open(self.path('config.toml'), 'w') as f:
            f.write('x = 1')
        with self.assertRaises(ValueError):
            load_config(self.path('config.toml'))

        with open(self.path('list.yaml'), 'w') as f:
            f.write('- 1\n- 2\n')
        with self.assertRaises(ValueError):
            load_config(self.path('list.yaml'))

        with open(self.path('invalid.yaml'), 'w') as f:
            yaml.safe_dump({'default_split': 3.0}, f)
        with self.assertRaises(ValueError):
            load_config(self.path('invalid.yaml'))

    def test_save_drops_api_key(self):
        config = EditorConfig(api_key='secret', feather_ratio=0.25)

        save_config(config, self.path('saved.yaml'))
        save_config(config, self.path('saved.json'), format='json')

        with open(self.path('saved.yaml')) as f:
            self.assertNotIn('secret', f.read())
        self.assertEqual(load_config(self.path('saved.yaml')).feather_ratio, 0.25)
        self.assertIsNone(load_config(self.path('saved.json')).api_key)

        with self.assertRaises(ValueError):
            save_config(config, self.path('saved.ini'), format='ini')

    def test_sample_config_loads(self):
        create_sample_config(self.path('sample.yaml'))

        config = load_config(self.path('sample.yaml'))

        self.assertEqual(config, EditorConfig())

    def test_default_config_path(self):
        home = Path(self.temp_dir) / 'home'
        cwd = Path(self.temp_dir) / 'work'
        home.mkdir()
        cwd.mkdir()

        with patch('face_patch.ui.config.Path.cwd', return_value=cwd), \
                patch('face_patch.ui.config.Path.home', return_value=home):
            self.assertEqual(get_default_config_path(), cwd / 'face_patch.yaml')

            user_config = home / '.config' / 'face_patch' / 'config.yaml'
            create_sample_config(str(user_config))
            self.assertEqual(get_default_config_path(), user_config)


if __name__ == '__main__':
    unittest.main()
