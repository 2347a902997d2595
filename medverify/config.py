"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.
    
    Attributes:
        database_url: SQLAlchemy connection string
        secret_key: Secret key used to sign session and reset tokens
        algorithm: Algorithm used for JWT encoding (typically HS256)
        session_token_expire_days: Session token lifetime in days
        reset_token_expire_minutes: Password reset token lifetime in minutes
        otp_expire_minutes: One-time passcode lifetime in minutes
        bcrypt_rounds: Work factor for password hashing
        
        # Email settings
        mail_server: SMTP server hostname (OTP codes are logged when unset)
        mail_port: SMTP server port
        mail_username: SMTP server username
        mail_password: SMTP server password
        mail_from: Sender email address
        mail_starttls: Whether to use STARTTLS
        
        # Document storage settings
        upload_dir: Local directory for verification documents
        max_document_size: Maximum accepted document size in bytes
        cloudinary_*: Cloudinary credentials, used instead of local storage when set
        
        # Bootstrap admin settings (optional)
        bootstrap_admin_*: Credentials for the first admin account
    """
    # Database settings
    database_url: str = "sqlite:///./medverify.db"
    
    # JWT settings
    secret_key: str
    algorithm: str = "HS256"
    session_token_expire_days: int = 7
    reset_token_expire_minutes: int = 15
    
    # OTP and password settings
    otp_expire_minutes: int = 10
    bcrypt_rounds: int = 12
    
    # Email settings
    mail_server: Optional[str] = None
    mail_port: int = 587
    mail_username: Optional[str] = None
    mail_password: Optional[str] = None
    mail_from: Optional[str] = None
    mail_starttls: bool = True
    
    # Document storage settings
    upload_dir: str = "uploads"
    max_document_size: int = 5 * 1024 * 1024
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    
    # Bootstrap admin settings (optional - only used for first admin creation)
    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None
    bootstrap_admin_phone: Optional[str] = None
    bootstrap_admin_name: str = "System Administrator"
    
    # Frontend settings
    cors_origins: List[str] = ["http://localhost:3000"]

    class Config:
        """Configuration for environment variables loading"""
        env_file = ".env"
        case_sensitive = False

    @property
    def smtp_configured(self) -> bool:
        return bool(self.mail_server and self.mail_username)

    @property
    def cloudinary_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )

# Create settings instance
settings = Settings()
