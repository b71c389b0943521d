"""
Unified configuration management with Pydantic validation.
Loads and validates all environment variables.
"""

from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv
from pydantic import Field, field_validator, ValidationError
from pydantic_settings import BaseSettings

# Load environment variables
load_dotenv()


class Config(BaseSettings):
    """Application configuration with validation."""

    # ========================
    # Database Configuration
    # ========================
    database_path: str = Field(default="inspections.db", alias="DATABASE_PATH")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # ========================
    # Remote Storage Configuration
    # ========================
    storage_backend: str = Field(default="local", alias="STORAGE_BACKEND")
    google_service_account_file: Optional[str] = Field(
        default=None,
        alias="GOOGLE_SERVICE_ACCOUNT_FILE"
    )
    google_drive_folder_id: str = Field(default="root", alias="GOOGLE_DRIVE_FOLDER_ID")
    upload_max_retries: int = Field(default=3, alias="UPLOAD_MAX_RETRIES")
    upload_retry_base_seconds: float = Field(default=1.0, alias="UPLOAD_RETRY_BASE_SECONDS")

    # ========================
    # Email Configuration
    # ========================
    sendgrid_api_key: Optional[str] = Field(default=None, alias="SENDGRID_API_KEY")
    sendgrid_api_url: str = Field(
        default="https://api.sendgrid.com/v3/mail/send",
        alias="SENDGRID_API_URL"
    )
    from_email: str = Field(
        default="noreply@delivery-inspection.local",
        alias="FROM_EMAIL"
    )
    support_email: Optional[str] = Field(default=None, alias="SUPPORT_EMAIL")
    default_sales_rep_email: str = Field(
        default="sales@delivery-inspection.local",
        alias="DEFAULT_SALES_REP_EMAIL"
    )

    # ========================
    # Order Lookup Configuration
    # ========================
    order_api_url: str = Field(
        default="https://fleet-api.prd.na.vn.cloud.tesla.com/api/1/orders",
        alias="ORDER_API_URL"
    )
    order_auth_url: str = Field(
        default="https://auth.tesla.com/oauth2/v3/token",
        alias="ORDER_AUTH_URL"
    )
    order_client_id: Optional[str] = Field(default=None, alias="ORDER_CLIENT_ID")
    order_client_secret: Optional[str] = Field(default=None, alias="ORDER_CLIENT_SECRET")

    # ========================
    # Evidence Limits
    # ========================
    max_file_size_mb: int = Field(default=50, alias="MAX_FILE_SIZE_MB")
    max_photos_per_item: int = Field(default=5, alias="MAX_PHOTOS_PER_ITEM")
    max_videos_per_item: int = Field(default=1, alias="MAX_VIDEOS_PER_ITEM")
    max_video_seconds: int = Field(default=120, alias="MAX_VIDEO_SECONDS")

    # ========================
    # Camera Configuration
    # ========================
    camera_index: int = Field(default=0, alias="CAMERA_INDEX")
    camera_rear_index: Optional[int] = Field(default=None, alias="CAMERA_REAR_INDEX")
    photo_jpeg_quality: int = Field(default=80, alias="PHOTO_JPEG_QUALITY")
    recording_fps: float = Field(default=20.0, alias="RECORDING_FPS")

    # ========================
    # File Storage Configuration
    # ========================
    upload_dir: str = Field(default="uploads", alias="UPLOAD_DIR")
    report_dir: str = Field(default="reports", alias="REPORT_DIR")
    log_dir: str = Field(default="logs", alias="LOG_DIR")
    draft_dir: str = Field(default="drafts", alias="DRAFT_DIR")
    checklist_path: Optional[str] = Field(default=None, alias="CHECKLIST_PATH")

    # ========================
    # Logging Configuration
    # ========================
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_to_file: bool = Field(default=False, alias="LOG_TO_FILE")

    # ========================
    # API Configuration
    # ========================
    api_timeout: int = Field(default=30, alias="API_TIMEOUT")

    # ========================
    # UI Configuration
    # ========================
    app_title: str = Field(default="Delivery Inspection System", alias="APP_TITLE")

    # ========================
    # Development Configuration
    # ========================
    environment: str = Field(default="development", alias="ENVIRONMENT")
    skip_health_checks: bool = Field(default=False, alias="SKIP_HEALTH_CHECKS")

    # ========================
    # Validators
    # ========================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of {valid_envs}")
        return v.lower()

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        """Validate storage backend."""
        valid_backends = ["local", "gdrive"]
        if v.lower() not in valid_backends:
            raise ValueError(f"STORAGE_BACKEND must be one of {valid_backends}")
        return v.lower()

    @field_validator(
        "max_file_size_mb",
        "max_photos_per_item",
        "max_videos_per_item",
        "max_video_seconds",
        "api_timeout",
    )
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        """Validate limits are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be greater than 0")
        return v

    @field_validator("photo_jpeg_quality")
    @classmethod
    def validate_jpeg_quality(cls, v: int) -> int:
        """Validate JPEG quality."""
        if not 1 <= v <= 100:
            raise ValueError("PHOTO_JPEG_QUALITY must be between 1 and 100")
        return v

    # ========================
    # Helper Properties
    # ========================

    @property
    def max_file_size_bytes(self) -> int:
        """Maximum evidence size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def email_enabled(self) -> bool:
        """Check if an email provider is configured."""
        return bool(self.sendgrid_api_key)

    @property
    def order_api_enabled(self) -> bool:
        """Check if order lookup credentials are configured."""
        return bool(self.order_client_id and self.order_client_secret)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"

    @property
    def recipient_categories(self) -> List[str]:
        """Notification categories that are always attempted."""
        categories = ["representative", "customer"]
        if self.support_email:
            categories.append("support")
        return categories

    def get_checklist_path(self) -> Path:
        """Get checklist catalog path."""
        if self.checklist_path:
            return Path(self.checklist_path)
        return Path(__file__).parent.parent / "config" / "checklist.yaml"

    def get_upload_dir(self) -> Path:
        """Get upload directory as Path object."""
        path = Path(self.upload_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_report_dir(self) -> Path:
        """Get report directory as Path object."""
        path = Path(self.report_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_log_dir(self) -> Path:
        """Get log directory as Path object."""
        path = Path(self.log_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_draft_dir(self) -> Path:
        """Get draft cache directory as Path object."""
        path = Path(self.draft_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
        populate_by_name = True


def get_config() -> Config:
    """
    Load and validate configuration.
    Exits if configuration is invalid.
    """
    try:
        return Config()

    except ValidationError as e:
        print("\n❌ Configuration Error:")
        print("=" * 60)
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            print(f"\n Field: {field}")
            print(f"  Error: {error['msg']}")
            if "input" in error:
                print(f"  Value: {error['input']}")
        print("\n" + "=" * 60)
        print("\nPlease check your .env file and fix the errors above.")
        print("See .env.example for reference.\n")
        raise SystemExit(1)


# Global configuration instance
config = get_config()


# Export commonly used paths
UPLOAD_DIR = config.get_upload_dir()
REPORT_DIR = config.get_report_dir()
LOG_DIR = config.get_log_dir()
DRAFT_DIR = config.get_draft_dir()
