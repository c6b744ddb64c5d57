"""Services for the Linkle backend."""
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError, strip_code_fence
from .question_sequencer import QuestionPack, QuestionSequencer
from .question_refiner import QuestionRefiner
from .suggestion_parser import parse_suggestions
from .completion_requester import CompletionRequester
from .conversation_flow import ConversationFlow, ConversationStateError, ConversationBusyError
from .conversation_manager import ConversationManager, ConversationNotFoundError
from .target_store import TargetStore, TargetNotFoundError
from .contact_selector import filter_contacts, select_targets, preselected_ids, pick_random_target

__all__ = ['LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'strip_code_fence', 'QuestionPack', 'QuestionSequencer', 'QuestionRefiner', 'parse_suggestions', 'CompletionRequester', 'ConversationFlow', 'ConversationStateError', 'ConversationBusyError', 'ConversationManager', 'ConversationNotFoundError', 'TargetStore', 'TargetNotFoundError', 'filter_contacts', 'select_targets', 'preselected_ids', 'pick_random_target']
