APP_VERSION = "1.0.0"
REPOSITORY_URL = "https://github.com/huangxd-/danmu_api.git"
