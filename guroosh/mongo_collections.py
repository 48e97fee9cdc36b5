# guroosh/mongo_collections.py

USERS = "users"
ADVISOR_REQUESTS = "advisor_requests"
REQUESTS = "requests"
MESSAGES = "messages"
NOTES = "notes"
MEETINGS = "meetings"
NOTIFICATIONS = "notifications"
SETTINGS = "settings"
CATEGORIES = "categories"
EXPENSES = "expenses"
INCOMES = "incomes"
BUDGETS = "budgets"
GOALS = "goals"
INVESTMENTS = "investments"

# Notes:
# - Personal finance docs (categories..investments) carry userId (ObjectId).
# - Advisory docs reference users through client/advisor/user/sender fields.
# - ADVISOR_REQUESTS is unique on (user, advisor); CATEGORIES on (userId, name, type).
