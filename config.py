import os

# --- 應用程式設定 ---
# 全部從環境變數讀取，沒設定就用開發用的預設值
APP_ENV = os.getenv("APP_ENV", "development")
IS_PRODUCTION = APP_ENV == "production"

# Session Cookie 簽章用的鑰匙，正式上線一定要改用環境變數設定
SECRET_KEY = os.getenv("SECRET_KEY") or os.getenv("SESSION_SECRET") or "workit-secret-please-change-me"
SESSION_COOKIE = "workit.sid"
SESSION_MAX_AGE = 30 * 24 * 60 * 60  # 登入狀態維持 30 天 (秒)

# 啟動時自動建立的管理員帳號 (兩個都有設定才會建立)
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@workit.com")
