"""Teacher login form; submitted as JSON to `/api/auth/login` by laporan.js."""

from .base import Component


class LoginForm(Component):
    def __init__(self, action: str = "/api/auth/login", redirect_to: str = "/laporan"):
        self.action = action
        self.redirect_to = redirect_to

    def render(self) -> str:
        form_attrs = self.attributes(
            id="login-form",
            class_="form login-form",
            method="post",
            action=self.action,
            data_redirect=self.redirect_to,
        )
        return f"""<form {form_attrs}>
    <h1>Masuk Guru</h1>
    <div class="form-field">
        <label for="identifier">Email atau username</label>
        <input {self.attributes(id="identifier", name="identifier", type="text", autocomplete="username", required=True)}>
    </div>
    <div class="form-field">
        <label for="password">Password</label>
        <input {self.attributes(id="password", name="password", type="password", autocomplete="current-password", required=True)}>
    </div>
    <p class="form-error" role="alert" hidden></p>
    <button type="submit" class="btn btn-primary">Masuk</button>
</form>"""
