# Import all models so SQLAlchemy sees them
from studyshelf.models.user import User  # noqa
from studyshelf.models.document import Document, Page  # noqa
from studyshelf.models.category import AIModel, Prompt, Category  # noqa
from studyshelf.models.quiz import Quiz, Question  # noqa
from studyshelf.models.explanation import Explanation  # noqa
