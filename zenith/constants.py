
STATE_STORAGE_KEY = "zenith_app_state_v1"
QUOTE_STORAGE_KEY = "zenith_cached_quote"
PROFILES_TABLE = "profiles"
LOCAL_STORAGE_TABLE = "local_storage"

DEFAULT_USER_NAME = "Explorador"
DEFAULT_WATER_GOAL = 2000

DEFAULT_WATER_REMINDERS = [
    {"id": "1", "time": "08:00", "label": "Despertar Hidratado", "isActive": True},
    {"id": "2", "time": "11:30", "label": "Antes do Almoço", "isActive": True},
    {"id": "3", "time": "15:00", "label": "Pausa do Trabalho", "isActive": False},
    {"id": "4", "time": "19:00", "label": "Meta Final", "isActive": True},
]
DEFAULT_NOTE_CATEGORIES = ["Pessoal", "Estudos", "Ideias", "Trabalho"]
DEFAULT_MUSIC_INSTRUMENTS = ["Violão", "Teclado", "Bateria", "Voz", "Guitarra", "Piano", "Baixo"]

MEAL_SLOTS = ["breakfast", "lunch", "snack", "dinner"]
MEAL_FIELDS = MEAL_SLOTS + ["notes"]
DAYS_IN_WEEK = 7

PRIORITIES = ["low", "medium", "high"]
DEFAULT_PRIORITY = "medium"

ALL_NOTES_FILTER = "Tudo"
GENERAL_TOPIC = "Geral"
STUDY_METRICS = ["hours", "questions"]
LOG_KINDS = ["session", "question"]

SHOPPING_DELIMITERS = r"[,;.\n]"
SHOPPING_MIN_LENGTH = 3
SHOPPING_LIST_HEADER = "🛒 MINHA LISTA DE COMPRAS"
SHOPPING_LIST_FOOTER = "Gerado por MY LIFE IS HERE ✨"

FALLBACK_QUOTE = "Hoje, você pode ser melhor do que foi ontem."
STUDY_ADVICE_EMPTY = "A consistência é a chave para o aprendizado."
STUDY_ADVICE_FALLBACK = "Divida o conteúdo em pequenos blocos e faça revisões constantes."

MSG_REQUIRED_FIELDS = "Preencha todos os campos."
MSG_NOTE_TITLE_REQUIRED = "Sua nota precisa de um título."
MSG_LAST_CATEGORY = "Você deve ter pelo menos um tópico ativo."
MSG_LAST_INSTRUMENT = "Você deve ter pelo menos um instrumento."
