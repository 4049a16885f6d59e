from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'Content Refresh Service'
    environment: str = 'development'
    debug: bool = False

    host: str = '0.0.0.0'
    port: int = 4000

    log_level: str = 'INFO'
    log_file: str = ''

    # Disable to serve on-demand triggers only
    enable_scheduler: bool = True


settings = Settings()
