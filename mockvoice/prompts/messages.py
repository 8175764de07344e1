"""
Spoken lines and scripted fallbacks (pt-BR).

Whatever the coach says on its own, and whatever replaces a failed
service call, lives here.
"""

INTRODUCTION = "Olá! Eu sou seu coach de entrevistas. Vamos começar a praticar!"

REPEAT_ACKNOWLEDGEMENT = "Claro! Vou repetir a pergunta."

CLARIFY_TEMPLATE = (
    "Vou reformular a pergunta de outro jeito: {question} "
    "Em outras palavras, quero ouvir sua visão sobre isso com suas próprias palavras."
)

# retry_needed messages
NO_AUDIO = "Nenhum áudio foi capturado. Por favor, verifique seu microfone e tente novamente."
UNCLEAR_AUDIO = "Não consegui entender claramente. Vamos tentar de novo?"
FALSE_TRANSCRIPTION = (
    "Não consegui entender claramente. Por favor, fale mais próximo ao microfone e tente novamente."
)

# Language model fallbacks
FALLBACK_FEEDBACK = "Boa resposta! Continue praticando para ganhar mais confiança."
FALLBACK_SCORE = 75
FALLBACK_STRENGTHS = ["Comunicação clara"]
FALLBACK_FIXES = ["Pratique mais exemplos"]
FALLBACK_SUMMARY = (
    "Excelente simulação! Continue praticando para aprimorar suas habilidades de entrevista."
)

# error event messages
NO_TOPICS = "Nenhum tópico informado para a sessão."
NO_CONTEXT = "Nenhum contexto de vaga informado para a sessão."
MIC_PERMISSION_DENIED = (
    "Acesso ao microfone negado. Permita o uso do microfone e tente novamente."
)
MIC_NOT_FOUND = "Nenhum microfone encontrado. Conecte um microfone e tente novamente."
MIC_IN_USE = "O microfone já está em uso por outro aplicativo."
MIC_UNKNOWN = "Falha ao acessar o microfone. Verifique o dispositivo e tente novamente."
AUDIO_OUTPUT_FAILED = "Falha ao inicializar o áudio. Reinicie e tente novamente."
INIT_TIMEOUT = (
    "A inicialização da sessão demorou demais. Permita o acesso ao microfone e tente novamente."
)
SESSION_FAILED = "A sessão falhou: {detail}"

WARMING_MICROPHONE = "Inicializando acesso ao microfone..."
