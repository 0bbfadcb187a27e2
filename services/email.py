from flask import current_app
from flask_mail import Message

from extensions import mail


def enviar_codigo_recuperacao(destinatario, nome, codigo):
    """Envia o código de recuperação de senha. Retorna False se o envio falhar."""
    ttl = current_app.config.get('RECOVERY_CODE_TTL_MINUTES', 15)
    msg = Message('Colhetron - Código de recuperação de senha', recipients=[destinatario])
    msg.body = (
        f'Olá, {nome}!\n\n'
        f'Seu código de recuperação de senha é: {codigo}\n\n'
        f'O código expira em {ttl} minutos. Se você não solicitou a recuperação, ignore este e-mail.\n'
    )
    msg.html = (
        f'<p>Olá, <strong>{nome}</strong>!</p>'
        f'<p>Seu código de recuperação de senha é:</p>'
        f'<p style="font-size:24px;letter-spacing:4px;"><strong>{codigo}</strong></p>'
        f'<p>O código expira em {ttl} minutos.</p>'
    )
    try:
        mail.send(msg)
        return True
    except Exception as e:
        current_app.logger.error(f'Falha ao enviar e-mail de recuperação para {destinatario}: {e}')
        return False
