import os
import tempfile
import unittest
from unittest import TestCase, mock

from keyarray import (
    KeyArrayConfig,
    config,
    config_context,
    get_config,
    reset_config,
    set_config,
)

_KEYS = (
    "KEYARRAY_BLAS_LIB",
    "KEYARRAY_DISABLE_BLAS",
    "KEYARRAY_TILE_M",
    "KEYARRAY_TILE_N",
    "KEYARRAY_TILE_K",
    "KEYARRAY_COPY_SCRATCH",
)


def _clean_env(**values):
    env = {k: v for k, v in os.environ.items() if k not in _KEYS}
    env.update(values)
    return mock.patch.dict(os.environ, env, clear=True)


class TestFromEnv(TestCase):
    def test_defaults(self):
        with _clean_env():
            cfg = KeyArrayConfig.from_env()
        self.assertEqual(cfg, KeyArrayConfig())
        self.assertIsNone(cfg.blas_lib)
        self.assertFalse(cfg.disable_blas)
        self.assertTrue(cfg.copy_scratch)
        self.assertEqual((cfg.tile_m, cfg.tile_n, cfg.tile_k), (64, 64, 64))

    def test_reads_variables(self):
        with _clean_env(
            KEYARRAY_BLAS_LIB="libopenblas.so.0",
            KEYARRAY_DISABLE_BLAS="yes",
            KEYARRAY_TILE_M="16",
            KEYARRAY_COPY_SCRATCH="off",
        ):
            cfg = KeyArrayConfig.from_env()
        self.assertEqual(cfg.blas_lib, "libopenblas.so.0")
        self.assertTrue(cfg.disable_blas)
        self.assertEqual(cfg.tile_m, 16)
        self.assertFalse(cfg.copy_scratch)

    def test_blank_library_means_search(self):
        with _clean_env(KEYARRAY_BLAS_LIB="  "):
            self.assertIsNone(KeyArrayConfig.from_env().blas_lib)

    def test_invalid_values(self):
        with _clean_env(KEYARRAY_DISABLE_BLAS="maybe"):
            with self.assertRaises(ValueError):
                KeyArrayConfig.from_env()
        with _clean_env(KEYARRAY_TILE_K="abc"):
            with self.assertRaises(ValueError):
                KeyArrayConfig.from_env()
        with _clean_env(KEYARRAY_TILE_N="0"):
            with self.assertRaises(ValueError):
                KeyArrayConfig.from_env()

    def test_dotenv_file(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, ".env")
            with open(path, "w", encoding="utf-8") as f:
                f.write("KEYARRAY_TILE_M=8\nKEYARRAY_DISABLE_BLAS=1\n")
            with _clean_env(KEYARRAY_TILE_M="32"):
                cfg = KeyArrayConfig.from_env(path)
        # variables already set win over the file
        self.assertEqual(cfg.tile_m, 32)
        self.assertTrue(cfg.disable_blas)

    def test_direct_validation(self):
        with self.assertRaises(ValueError):
            KeyArrayConfig(tile_m=-1)


class TestActiveConfig(TestCase):
    def tearDown(self):
        reset_config()

    def test_set_and_reset(self):
        with _clean_env():
            reset_config()
            self.assertEqual(get_config(), KeyArrayConfig())
            new = set_config(tile_k=7)
            self.assertEqual(new.tile_k, 7)
            self.assertIs(get_config(), new)
            reset_config()
            self.assertEqual(get_config().tile_k, 64)

    def test_context_restores(self):
        with _clean_env():
            reset_config()
            before = get_config()
            with config_context(disable_blas=True, tile_m=4) as cfg:
                self.assertTrue(get_config().disable_blas)
                self.assertEqual(cfg.tile_m, 4)
            self.assertEqual(get_config(), before)

    def test_context_restores_after_error(self):
        before = get_config()
        with self.assertRaises(RuntimeError):
            with config_context(copy_scratch=False):
                raise RuntimeError("boom")
        self.assertEqual(get_config(), before)

    def test_unknown_field(self):
        with self.assertRaises(TypeError):
            set_config(no_such_field=1)
        with self.assertRaises(TypeError):
            with config_context(no_such_field=1):
                pass

    def test_donfig_settings_are_visible(self):
        with _clean_env():
            reset_config()
            config.set({"tile_n": 12, "copy_scratch": "no"})
            self.assertEqual(get_config().tile_n, 12)
            self.assertFalse(get_config().copy_scratch)
            with config.set({"disable_blas": True}):
                self.assertTrue(get_config().disable_blas)
            self.assertFalse(get_config().disable_blas)

    def test_snapshot_cached_until_a_value_changes(self):
        with _clean_env():
            reset_config()
            first = get_config()
            self.assertIs(get_config(), first)
            config.set({"tile_m": 16})
            self.assertIsNot(get_config(), first)
            self.assertEqual(get_config().tile_m, 16)

    def test_reset_rereads_environment(self):
        with _clean_env(KEYARRAY_TILE_K="24", KEYARRAY_DISABLE_BLAS="true"):
            reset_config()
            cfg = get_config()
            self.assertEqual(cfg.tile_k, 24)
            self.assertTrue(cfg.disable_blas)

    def test_invalid_donfig_value(self):
        config.set({"tile_m": "wide"})
        with self.assertRaises(ValueError):
            get_config()

    def test_from_env_leaves_active_config(self):
        with _clean_env():
            reset_config()
            set_config(tile_m=5)
            with _clean_env(KEYARRAY_TILE_M="9"):
                self.assertEqual(KeyArrayConfig.from_env().tile_m, 9)
            self.assertEqual(get_config().tile_m, 5)


if __name__ == "__main__":
    unittest.main()
