# backend/app/constants.py

# Customer tiers by lifetime spend
VIP_THRESHOLD = 500000
PREMIUM_THRESHOLD = 200000

DEFAULT_PAGE_SIZE = 50
