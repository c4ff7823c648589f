"""Tests for studio.config -- environment-driven settings."""

from studio.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.tweet_max_chars == 280
        assert settings.max_media_per_tweet == 4
        assert settings.schedule_min_lead_seconds == 60
        assert settings.schedule_max_horizon_days == 3650
        assert settings.account_cache_ttl_seconds == 3600
        assert settings.max_image_bytes == 5 * 1024 * 1024
        assert settings.max_gif_bytes == 15 * 1024 * 1024

    def test_celery_broker_defaults_to_redis(self, monkeypatch):
        monkeypatch.delenv("CELERY_BROKER_URL", raising=False)
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
        assert Settings(_env_file=None).celery_broker == "redis://cache:6379/1"

    def test_celery_broker_override(self, monkeypatch):
        monkeypatch.setenv("CELERY_BROKER_URL", "amqp://guest@rabbit//")
        assert Settings(_env_file=None).celery_broker == "amqp://guest@rabbit//"

    def test_r2_aliases(self, monkeypatch):
        monkeypatch.setenv("R2_BUCKET_NAME", "media")
        monkeypatch.setenv("R2_ENDPOINT", "https://acct.r2.cloudflarestorage.com")
        settings = Settings(_env_file=None)
        assert settings.s3_bucket == "media"
        assert settings.s3_endpoint_url == "https://acct.r2.cloudflarestorage.com"

    def test_video_limit_from_env(self, monkeypatch):
        monkeypatch.setenv("MAX_VIDEO_BYTES", "1024")
        assert Settings(_env_file=None).max_video_bytes == 1024

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
