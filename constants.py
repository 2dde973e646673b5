# constants.py

MESSAGE_TEMPLATES = {
    # Deficit
    "DEFICIT_CRITICAL": (
        "Alerta! Você gastou {expenseAmount} mas sua renda foi apenas {incomeAmount}. Déficit de {deficitAmount}."
    ),
    "DEFICIT_WARNING": (
        "Atenção! Seus gastos ({expensePercent}) estão muito próximos da sua renda. "
        "Cuidado para não entrar no vermelho."
    ),
    "NEGATIVE_BALANCE": "Emergência! Seu saldo está negativo: {balance}. Priorize eliminar dívidas urgentemente.",
    # Categories
    "LEISURE_HIGH": "Você gastou {amount} em {category} ({percent} da sua renda). Meta recomendada: até 30%.",
    "FOOD_OUT_HIGH": (
        "Gastos com alimentação fora de casa: {amount} ({percent}). "
        "Considere cozinhar mais em casa para economizar."
    ),
    "SUBSCRIPTIONS_HIGH": "Você tem {amount} em assinaturas ({percent} da renda). Revise quais são realmente necessárias.",
    "TRANSPORT_HIGH": "Transporte consumiu {amount} ({percent}). Avalie alternativas como transporte público ou carona.",
    "DELIVERY_HIGH": "Delivery: {amount} ({percent}). Reduzir pedidos pode gerar economia significativa.",
    "RIDE_HAILING_HIGH": "Apps de transporte: {amount} ({percent}). Considere transporte público para economizar.",
    # Savings
    "LOW_SAVINGS": "Sua poupança está em {savingsPercent}. Meta recomendada: pelo menos 10% da renda.",
    "NO_INVESTMENTS": "Nenhum investimento registrado este mês. Comece pequeno, mas comece!",
    "EXCELLENT_SAVINGS": "Parabéns! Você poupou {savingsPercent} da sua renda. Disciplina exemplar! 🎉",
    # Goal
    "SLOW_PROGRESS": "Progresso de apenas {progressPercent} em 30 dias. Acelere seus aportes para atingir {goal}!",
    "GOOD_PROGRESS": "Excelente ritmo! {progressPercent} de progresso em 30 dias. Continue assim!",
    "MILESTONE_50": "Você está na metade do caminho! {balance} de {goal} conquistados. 🎯",
    "MILESTONE_75": "Quase lá! Faltam apenas {remaining} para sua meta de {goal}. 🚀",
    "MILESTONE_90": "Reta final! Você está a {percent} da sua meta. A conquista está próxima! 💪",
    "GOAL_ACHIEVED": "🏆 PARABÉNS! Meta de {goal} conquistada! Você é um mestre das finanças!",
    # Other
    "NO_TRANSACTIONS": "Nenhuma transação registrada nos últimos 7 dias. Lembre-se de registrar todos os gastos!",
    "UNCATEGORIZED_HIGH": 'Muitos gastos em "Outros" ({percent}). Categorize melhor para ter insights mais precisos.',
    "GOOD_BALANCE": "Saldo positivo de {balance}! Você está no caminho certo. 💚",
    "CONSISTENT_TRACKING": "Ótimo! {count} transações registradas este mês. Controle é poder!",
    # Behaviour
    "CONSECUTIVE_SPENDING": "Detectamos um padrão de gastos diários consecutivos. Atenção ao hábito!",
    "LARGE_PURCHASE": "Grande compra detectada. Avalie o impacto na sua meta de longo prazo.",
    "HIGH_FREQUENCY": "{count} transações em {category} nos últimos 7 dias. Considere reduzir a frequência.",
    "NIGHT_SPENDING": "{count} gastos noturnos detectados. Compras noturnas tendem a ser por impulso.",
}

STAGE_MESSAGES = {
    "iniciante": (
        "Olá, {name}! Você está no início da jornada. "
        "Foco total em construir disciplina e registrar todos os gastos."
    ),
    "poupador": "{name}, você está progredindo! Continue poupando consistentemente e evite gastos desnecessários.",
    "investidor": "Excelente trabalho, {name}! Você está no caminho certo. Agora é hora de otimizar e acelerar.",
    "mestre": "🏆 {name}, você é um mestre! Sua disciplina financeira é exemplar. Continue assim!",
}

STAGE_CHALLENGES = {
    "iniciante": "Registre todos os seus gastos por 7 dias consecutivos.",
    "poupador": "Economize 15% da sua renda este mês.",
    "investidor": "Reduza seus gastos em 10% sem perder qualidade de vida.",
    "mestre": "Ajude alguém a começar sua jornada financeira!",
}

FAQ_ANSWERS = {
    "can_i_buy_high": (
        "Esta compra de {amount} representa {impact} do seu saldo atual. É um impacto significativo. "
        "Pergunte-se: isso é essencial? Você levaria cerca de {days} dias para recuperar esse valor."
    ),
    "can_i_buy_no_balance": (
        "Esta compra de {amount} é maior do que o saldo disponível. É um impacto significativo. "
        "Pergunte-se: isso é essencial? Você levaria cerca de {days} dias para recuperar esse valor."
    ),
    "can_i_buy_medium": (
        "Compra de {amount} ({impact} do saldo). É viável, mas avalie se não compromete suas metas de curto prazo."
    ),
    "can_i_buy_low": (
        "Compra de {amount} tem impacto baixo ({impact} do saldo). Se for algo que agrega valor, pode ir em frente!"
    ),
    "how_to_save": (
        "Atualmente você poupa {rate} da sua renda. Para economizar mais: "
        "1) Corte gastos supérfluos (delivery, assinaturas não usadas); "
        "2) Defina um valor fixo para poupar logo que receber; "
        "3) Evite compras por impulso (regra das 24h)."
    ),
    "when_goal_never": (
        "Com a economia atual, levaria muito tempo. Aumente seus aportes mensais! "
        "Cada R$ 100 a mais por mês faz diferença."
    ),
    "when_goal_years": (
        "Faltam {remaining}. No ritmo atual ({savings}/mês), você atingirá sua meta em aproximadamente "
        "{months} meses ({years} anos)."
    ),
    "when_goal_soon": (
        "Faltam {remaining}. No ritmo atual, você atingirá sua meta em aproximadamente {months} meses! "
        "Continue firme! 🎯"
    ),
    "invest_starter": (
        "Com saldo de {balance}, foque primeiro em construir uma reserva de emergência (3-6 meses de despesas). "
        "Depois, comece com Tesouro Direto ou CDBs de bancos digitais."
    ),
    "invest_growing": (
        "Com {balance}, você pode começar com Tesouro Selic (liquidez diária) e CDBs. "
        "Evite investimentos de alto risco até ter uma base sólida."
    ),
    "invest_diversify": (
        "Com {balance}, diversifique: Tesouro Direto (segurança), CDBs/LCIs (renda fixa), "
        "e considere fundos de índice (ações) para longo prazo. Estude antes de investir!"
    ),
    "fallback": (
        'Desculpe, não entendi sua pergunta. Tente perguntas como: "Posso comprar X?", '
        '"Como economizar mais?", "Quando atingirei minha meta?" ou "Como investir?"'
    ),
}
